"""
Object shapes consumed by place pose generation.

Only bounding extents matter here. Each shape reports its axis-aligned
bounds around its own origin; placement turns those into an edge margin and
a placement height.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import trimesh
from trimesh import transformations as tf

from semantic_world.contracts import IDENTITY_QUAT, DegenerateGeometryError, Quat, Vec3, to_quat

Bounds = Tuple[Vec3, Vec3]


def _symmetric_bounds(half_x: float, half_y: float, half_z: float) -> Bounds:
    return (-half_x, -half_y, -half_z), (half_x, half_y, half_z)


class ObjectShape(ABC):
    """Shape of an object to be placed."""

    @abstractmethod
    def local_bounds(self, orientation: Quat = IDENTITY_QUAT) -> Bounds:
        """Return the (lower, upper) corners of the shape's bounding box around its origin.

        Primitive shapes ignore the orientation; meshes are rotated first.
        """


@dataclass(frozen=True)
class Box(ObjectShape):
    size: Vec3

    def local_bounds(self, orientation: Quat = IDENTITY_QUAT) -> Bounds:
        sx, sy, sz = self.size
        return _symmetric_bounds(abs(sx) / 2.0, abs(sy) / 2.0, abs(sz) / 2.0)


@dataclass(frozen=True)
class Sphere(ObjectShape):
    radius: float

    def local_bounds(self, orientation: Quat = IDENTITY_QUAT) -> Bounds:
        r = abs(self.radius)
        return _symmetric_bounds(r, r, r)


@dataclass(frozen=True)
class Cylinder(ObjectShape):
    radius: float
    length: float

    def local_bounds(self, orientation: Quat = IDENTITY_QUAT) -> Bounds:
        r = abs(self.radius)
        return _symmetric_bounds(r, r, abs(self.length) / 2.0)


@dataclass(frozen=True)
class Cone(ObjectShape):
    radius: float
    length: float

    def local_bounds(self, orientation: Quat = IDENTITY_QUAT) -> Bounds:
        r = abs(self.radius)
        return _symmetric_bounds(r, r, abs(self.length) / 2.0)


@dataclass(frozen=True, eq=False)
class MeshShape(ObjectShape):
    """Triangle mesh object; bounds are measured after applying the orientation."""

    mesh: trimesh.Trimesh

    def local_bounds(self, orientation: Quat = IDENTITY_QUAT) -> Bounds:
        vertices = np.asarray(self.mesh.vertices, dtype=float)
        if len(vertices) == 0:
            raise DegenerateGeometryError("Mesh shape has no vertices")
        rotation = tf.quaternion_matrix(to_quat(orientation))[:3, :3]
        rotated = vertices @ rotation.T
        lower = rotated.min(axis=0)
        upper = rotated.max(axis=0)
        return tuple(float(v) for v in lower), tuple(float(v) for v in upper)
