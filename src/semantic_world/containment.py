"""
Point containment and edge distance tests against table footprints.

Boundary rule: a point lying on the footprint outline is outside. Place pose
sampling and table lookup both go through ``edge_clearance_mask`` so the two
call sites agree on every point.
"""
from typing import Sequence, Union

import numpy as np
import shapely
from shapely.geometry import Point, Polygon

from semantic_world.contracts import Pose, Table
from semantic_world.polygon_geometry import footprint_polygon

DISTANCE_TOLERANCE = 1e-9

PolygonLike = Union[Polygon, Sequence[Sequence[float]]]


def as_footprint_polygon(polygon: PolygonLike) -> Polygon:
    """Accept a shapely polygon as-is; validate and orient a point sequence."""
    if isinstance(polygon, Polygon):
        return polygon
    return footprint_polygon(tuple((float(p[0]), float(p[1])) for p in polygon))


def point_in_polygon(point: Sequence[float], polygon: PolygonLike) -> bool:
    """Strict containment test; points on an edge or vertex are outside."""
    poly = as_footprint_polygon(polygon)
    return bool(shapely.contains_xy(poly, float(point[0]), float(point[1])))


def distance_to_nearest_edge(point: Sequence[float], polygon: PolygonLike) -> float:
    """Distance from *point* to the closest outline segment, inside or outside."""
    poly = as_footprint_polygon(polygon)
    return float(poly.exterior.distance(Point(float(point[0]), float(point[1]))))


def edge_clearance_mask(
    polygon: PolygonLike,
    xs: np.ndarray,
    ys: np.ndarray,
    min_distance_from_edge: float,
) -> np.ndarray:
    """Vectorized inside-and-clear-of-edge test for arrays of XY points."""
    poly = as_footprint_polygon(polygon)
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    inside = shapely.contains_xy(poly, xs, ys)
    distances = shapely.distance(poly.exterior, shapely.points(xs, ys))
    return inside & (distances + DISTANCE_TOLERANCE >= min_distance_from_edge)


def vertical_offset(pose: Pose, table: Table) -> float:
    """Height of the pose position above the table surface, in the table frame."""
    return float(table.pose.inverse_transform_point(pose.position)[2])


def is_inside_table_contour(
    pose: Pose,
    table: Table,
    min_distance_from_edge: float = 0.0,
    min_vertical_offset: float = 0.0,
) -> bool:
    """Check whether *pose* rests over *table*.

    The pose position is moved into the table frame. It must sit at least
    ``min_vertical_offset`` above the surface, and its XY projection must be
    inside the footprint and at least ``min_distance_from_edge`` from every
    edge.
    """
    local = table.pose.inverse_transform_point(pose.position)
    if local[2] + DISTANCE_TOLERANCE < min_vertical_offset:
        return False
    mask = edge_clearance_mask(
        table.footprint,
        np.array([local[0]]),
        np.array([local[1]]),
        min_distance_from_edge,
    )
    return bool(mask[0])
