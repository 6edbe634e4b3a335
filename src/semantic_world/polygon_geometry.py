"""
Planar polygon helpers for table footprints.

Normalizes footprint winding with the shoelace signed area and extrudes a
footprint into a closed solid mesh that stands in for the table in a
collision world. Shapely validates the outline; trimesh ear-clips and
extrudes it.
"""
import logging
from functools import lru_cache
from typing import Sequence, Tuple

import numpy as np
import trimesh
from shapely.geometry import Polygon
from shapely.validation import explain_validity

from semantic_world.contracts import DegenerateGeometryError, Vec2

logger = logging.getLogger(__name__)

AREA_EPSILON = 1e-9
POINT_EPSILON = 1e-9


def signed_area(points_2d) -> float:
    """Shoelace signed area; positive for counter-clockwise winding."""
    pts = np.asarray(points_2d, dtype=float)
    x, y = pts[:, 0], pts[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def project_to_best_fit_plane(points) -> Tuple[np.ndarray, np.ndarray]:
    """Project 3D points onto their least-squares plane.

    The plane normal is flipped to point toward +Z so that "counter-clockwise"
    always means counter-clockwise seen from above.

    Returns:
        (points_2d, unit_normal)
    """
    pts = np.asarray(points, dtype=float)
    centred = pts - pts.mean(axis=0)
    _, _, vt = np.linalg.svd(centred)
    normal = vt[2]
    if abs(normal[2]) > POINT_EPSILON:
        if normal[2] < 0.0:
            normal = -normal
    else:
        # Vertical plane: fix the sign on the largest horizontal component.
        if normal[int(np.argmax(np.abs(normal)))] < 0.0:
            normal = -normal
    # In-plane axes with u x v = normal
    u_axis = vt[0]
    v_axis = np.cross(normal, u_axis)
    return np.column_stack([centred @ u_axis, centred @ v_axis]), normal


def orient_planar_polygon(points, area_epsilon: float = AREA_EPSILON) -> np.ndarray:
    """Return a copy of *points* wound counter-clockwise around the up normal.

    Accepts Nx2 points in the local XY plane or Nx3 points, which are judged
    in their best-fit plane. The first vertex is kept in place when the
    winding is reversed, so orienting twice is a no-op.

    Raises:
        DegenerateGeometryError: fewer than 3 points, or zero signed area
            (collinear or coincident points).
    """
    pts = np.array(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] not in (2, 3):
        raise DegenerateGeometryError(f"Expected Nx2 or Nx3 points, got shape {pts.shape}")
    if len(pts) < 3:
        raise DegenerateGeometryError(f"Polygon needs at least 3 points, got {len(pts)}")

    planar = pts if pts.shape[1] == 2 else project_to_best_fit_plane(pts)[0]
    area = signed_area(planar)
    if abs(area) <= area_epsilon:
        raise DegenerateGeometryError(f"Polygon has zero area ({area:.3e})")
    if area < 0.0:
        return np.concatenate([pts[:1], pts[:0:-1]])
    return pts


def validate_footprint(points, area_epsilon: float = AREA_EPSILON) -> np.ndarray:
    """Check the table footprint invariants and return the oriented Nx2 outline.

    A trailing point equal to the first one is treated as a ring closure and
    dropped.
    """
    pts = np.array(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise DegenerateGeometryError(f"Footprint must be Nx2, got shape {pts.shape}")
    if len(pts) > 3 and np.linalg.norm(pts[-1] - pts[0]) <= POINT_EPSILON:
        pts = pts[:-1]
    if len(pts) < 3:
        raise DegenerateGeometryError(f"Footprint needs at least 3 points, got {len(pts)}")

    steps = np.linalg.norm(np.roll(pts, -1, axis=0) - pts, axis=1)
    if np.any(steps <= POINT_EPSILON):
        index = int(np.argmin(steps))
        raise DegenerateGeometryError(f"Footprint repeats point {index}: {tuple(pts[index])}")

    outline = orient_planar_polygon(pts, area_epsilon)
    polygon = Polygon(outline)
    if not polygon.is_valid:
        raise DegenerateGeometryError(f"Footprint is not simple: {explain_validity(polygon)}")
    return outline


@lru_cache(maxsize=256)
def footprint_polygon(footprint: Tuple[Vec2, ...], area_epsilon: float = AREA_EPSILON) -> Polygon:
    """Validated, counter-clockwise shapely polygon for a footprint tuple."""
    return Polygon(validate_footprint(footprint, area_epsilon))


def create_solid_mesh_from_planar_polygon(
    points: Sequence[Sequence[float]],
    thickness: float,
    area_epsilon: float = AREA_EPSILON,
) -> trimesh.Trimesh:
    """Extrude a footprint into a closed slab below its plane.

    The top face sits at local z = 0 and the bottom face at z = -thickness.
    Only the x, y coordinates of *points* are used. Non-convex outlines are
    ear-clipped, so the result is a valid volume for any simple polygon.

    Raises:
        DegenerateGeometryError: non-positive thickness, invalid outline, or
            an extrusion that is not a closed outward-facing volume.
    """
    if not thickness > 0.0:
        raise DegenerateGeometryError(f"Extrusion thickness must be positive, got {thickness}")

    pts = np.asarray(points, dtype=float)
    if pts.ndim == 2 and pts.shape[1] == 3:
        pts = pts[:, :2]
    outline = validate_footprint(pts, area_epsilon)

    mesh = trimesh.creation.extrude_polygon(Polygon(outline), height=thickness, engine="earcut")
    mesh.apply_translation([0.0, 0.0, -thickness])
    if mesh.volume < 0.0:
        mesh.invert()

    if not mesh.is_watertight or not mesh.is_winding_consistent or mesh.volume <= 0.0:
        raise DegenerateGeometryError(
            f"Extruded footprint is not a closed volume "
            f"(watertight={mesh.is_watertight}, volume={mesh.volume:.3e})"
        )

    logger.debug(
        "Extruded footprint: %d vertices, %d faces, volume %.6f",
        len(mesh.vertices), len(mesh.faces), mesh.volume,
    )
    return mesh
