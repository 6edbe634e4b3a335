"""Value types, errors and configuration shared across the semantic world."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from trimesh import transformations as tf

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]
Quat = Tuple[float, float, float, float]  # (w, x, y, z)

IDENTITY_QUAT: Quat = (1.0, 0.0, 0.0, 0.0)


class SemanticWorldError(Exception):
    """Base exception for semantic world errors."""
    pass


class DegenerateGeometryError(SemanticWorldError, ValueError):
    """Polygon or extrusion input cannot describe a solid surface."""
    pass


class InvalidQueryError(SemanticWorldError, ValueError):
    """Query arguments are out of range."""
    pass


class TableNotFoundError(SemanticWorldError, KeyError):
    """No table with the requested name is known."""
    pass


@dataclass(frozen=True)
class SemanticWorldConfig:
    """Defaults for the table registry and place pose sampling."""

    planning_frame: str = "world"
    table_thickness: float = 0.01  # metres, extrusion depth of table solids
    default_delta_height: float = 0.01
    default_num_heights: int = 2
    default_min_distance_from_edge: float = 0.10
    area_epsilon: float = 1e-9


def to_vec3(values: Sequence[float]) -> Vec3:
    return (float(values[0]), float(values[1]), float(values[2]))


def to_quat(values: Sequence[float]) -> Quat:
    """Normalize a (w, x, y, z) quaternion."""
    q = np.asarray(values, dtype=float)
    norm = float(np.linalg.norm(q))
    if q.shape != (4,) or norm < 1e-12:
        raise InvalidQueryError(f"Invalid quaternion: {values}")
    q = q / norm
    return (float(q[0]), float(q[1]), float(q[2]), float(q[3]))


@dataclass(frozen=True)
class Pose:
    """Rigid-body pose: position in metres, orientation as a (w, x, y, z) quaternion."""

    position: Vec3 = (0.0, 0.0, 0.0)
    orientation: Quat = IDENTITY_QUAT

    def __post_init__(self):
        object.__setattr__(self, "position", to_vec3(self.position))
        object.__setattr__(self, "orientation", to_quat(self.orientation))

    def to_matrix(self) -> np.ndarray:
        matrix = tf.quaternion_matrix(self.orientation)
        matrix[:3, 3] = self.position
        return matrix

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Pose":
        matrix = np.asarray(matrix, dtype=float)
        return cls(
            position=to_vec3(matrix[:3, 3]),
            orientation=to_quat(tf.quaternion_from_matrix(matrix)),
        )

    def transform_point(self, point: Sequence[float]) -> np.ndarray:
        """Map a point from this pose's local frame into its parent frame."""
        homogeneous = np.append(np.asarray(point, dtype=float), 1.0)
        return (self.to_matrix() @ homogeneous)[:3]

    def inverse_transform_point(self, point: Sequence[float]) -> np.ndarray:
        """Map a point from the parent frame into this pose's local frame."""
        homogeneous = np.append(np.asarray(point, dtype=float), 1.0)
        return (tf.inverse_matrix(self.to_matrix()) @ homogeneous)[:3]


@dataclass(frozen=True)
class Table:
    """A detected support surface.

    The footprint is given in the table's local XY plane; the surface itself
    lies at local z = 0 with +Z pointing up.
    """

    name: str
    pose: Pose
    footprint: Tuple[Vec2, ...]
    frame_id: str = "world"

    def __post_init__(self):
        object.__setattr__(
            self,
            "footprint",
            tuple((float(p[0]), float(p[1])) for p in self.footprint),
        )

    def with_pose(self, pose: Pose, frame_id: str) -> "Table":
        return Table(name=self.name, pose=pose, footprint=self.footprint, frame_id=frame_id)


@dataclass(frozen=True)
class TableArray:
    """One observation from the table detector: a full replacement table set."""

    tables: Tuple[Table, ...] = ()
    frame_id: Optional[str] = None  # overrides each table's frame_id when set

    def __post_init__(self):
        object.__setattr__(self, "tables", tuple(self.tables))


@dataclass(frozen=True)
class PlacePose:
    """A candidate placement pose tagged with the frame it is expressed in."""

    pose: Pose
    frame_id: str


@dataclass(frozen=True)
class PlacementRequest:
    """Fully resolved grid sampling parameters."""

    resolution: float
    height_above_table: float
    orientation: Quat = IDENTITY_QUAT
    delta_height: float = 0.01
    num_heights: int = 2
    min_distance_from_edge: float = 0.10

    def validate(self) -> None:
        if not self.resolution > 0.0:
            raise InvalidQueryError(f"Resolution must be positive, got {self.resolution}")
        if self.num_heights < 1:
            raise InvalidQueryError(f"num_heights must be at least 1, got {self.num_heights}")
