"""
Grid sampling of place poses over a table footprint.

Candidate XY locations are taken on a regular grid over the footprint's
bounding box, X outer and Y inner, both increasing. A location is kept when
it is inside the footprint and far enough from every edge; each kept
location yields one pose per stacked height. The public entry points only
resolve their arguments into a PlacementRequest and share
``sample_place_poses``.
"""
import logging
import math
from typing import List, Sequence, Tuple

import numpy as np

from semantic_world.containment import edge_clearance_mask
from semantic_world.contracts import (
    IDENTITY_QUAT,
    PlacementRequest,
    PlacePose,
    Pose,
    Quat,
    Table,
    to_quat,
)
from semantic_world.polygon_geometry import footprint_polygon
from semantic_world.shapes import ObjectShape

logger = logging.getLogger(__name__)

GRID_EPSILON = 1e-9


def resolve_object_defaults(object_shape: ObjectShape, orientation: Sequence[float]) -> Tuple[float, float]:
    """Derive (min_distance_from_edge, height_above_table) from a shape's bounds.

    The margin is half the larger horizontal extent. The height is how far
    the shape reaches below its origin, so the object rests on the surface.
    """
    lower, upper = object_shape.local_bounds(to_quat(orientation))
    margin = 0.5 * max(upper[0] - lower[0], upper[1] - lower[1])
    return float(margin), float(-lower[2])


def generate_place_poses(
    table: Table,
    resolution: float,
    height_above_table: float,
    delta_height: float = 0.01,
    num_heights: int = 2,
    min_distance_from_edge: float = 0.10,
    orientation: Quat = IDENTITY_QUAT,
) -> List[PlacePose]:
    """Sample place poses with an explicit height and edge margin."""
    request = PlacementRequest(
        resolution=float(resolution),
        height_above_table=float(height_above_table),
        orientation=to_quat(orientation),
        delta_height=float(delta_height),
        num_heights=int(num_heights),
        min_distance_from_edge=float(min_distance_from_edge),
    )
    return sample_place_poses(table, request)


def generate_object_place_poses(
    table: Table,
    object_shape: ObjectShape,
    orientation: Quat,
    resolution: float,
    delta_height: float = 0.01,
    num_heights: int = 2,
) -> List[PlacePose]:
    """Sample place poses sized for *object_shape* held at *orientation*."""
    min_distance_from_edge, height_above_table = resolve_object_defaults(object_shape, orientation)
    return generate_place_poses(
        table,
        resolution,
        height_above_table,
        delta_height=delta_height,
        num_heights=num_heights,
        min_distance_from_edge=min_distance_from_edge,
        orientation=orientation,
    )


def sample_place_poses(table: Table, request: PlacementRequest) -> List[PlacePose]:
    """Enumerate place poses for a fully resolved request.

    Returns:
        Poses in grid order, heights innermost. Empty when no grid point
        clears the edge margin.

    Raises:
        InvalidQueryError: non-positive resolution or fewer than one height.
        DegenerateGeometryError: the table footprint is not a valid polygon.
    """
    request.validate()
    polygon = footprint_polygon(table.footprint)
    min_x, min_y, max_x, max_y = polygon.bounds

    xs = min_x + np.arange(_grid_count(max_x - min_x, request.resolution)) * request.resolution
    ys = min_y + np.arange(_grid_count(max_y - min_y, request.resolution)) * request.resolution
    grid_x, grid_y = np.meshgrid(xs, ys, indexing="ij")  # X outer, Y inner after ravel
    grid_x = grid_x.ravel()
    grid_y = grid_y.ravel()

    accepted = edge_clearance_mask(polygon, grid_x, grid_y, request.min_distance_from_edge)
    table_matrix = table.pose.to_matrix()

    place_poses: List[PlacePose] = []
    for x, y in zip(grid_x[accepted], grid_y[accepted]):
        for k in range(request.num_heights):
            z = request.height_above_table + k * request.delta_height
            position = table_matrix @ np.array([x, y, z, 1.0])
            place_poses.append(PlacePose(
                pose=Pose(position=position[:3], orientation=request.orientation),
                frame_id=table.frame_id,
            ))

    logger.debug(
        "Table %s: %d of %d grid points accepted, %d place poses",
        table.name, int(np.count_nonzero(accepted)), len(grid_x), len(place_poses),
    )
    return place_poses


def _grid_count(extent: float, resolution: float) -> int:
    """Number of grid samples covering [0, extent] at the given step."""
    return int(math.floor(extent / resolution + GRID_EPSILON)) + 1
