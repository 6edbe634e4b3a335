"""Public API for the semantic world table registry and place pose sampling."""

from semantic_world.collision import (
    CollisionObject,
    CollisionOperation,
    CollisionWorldSink,
    PlanningSceneDiff,
)
from semantic_world.containment import (
    distance_to_nearest_edge,
    is_inside_table_contour,
    point_in_polygon,
)
from semantic_world.contracts import (
    DegenerateGeometryError,
    InvalidQueryError,
    PlacePose,
    Pose,
    SemanticWorldConfig,
    SemanticWorldError,
    Table,
    TableArray,
    TableNotFoundError,
)
from semantic_world.markers import Marker, get_place_locations_marker
from semantic_world.placement import generate_object_place_poses, generate_place_poses
from semantic_world.polygon_geometry import (
    create_solid_mesh_from_planar_polygon,
    orient_planar_polygon,
)
from semantic_world.registry import SemanticWorld
from semantic_world.shapes import Box, Cone, Cylinder, MeshShape, ObjectShape, Sphere

__all__ = [
    "Box",
    "CollisionObject",
    "CollisionOperation",
    "CollisionWorldSink",
    "Cone",
    "Cylinder",
    "DegenerateGeometryError",
    "InvalidQueryError",
    "Marker",
    "MeshShape",
    "ObjectShape",
    "PlacePose",
    "PlanningSceneDiff",
    "Pose",
    "SemanticWorld",
    "SemanticWorldConfig",
    "SemanticWorldError",
    "Sphere",
    "Table",
    "TableArray",
    "TableNotFoundError",
    "create_solid_mesh_from_planar_polygon",
    "distance_to_nearest_edge",
    "generate_object_place_poses",
    "generate_place_poses",
    "get_place_locations_marker",
    "is_inside_table_contour",
    "orient_planar_polygon",
    "point_in_polygon",
]
