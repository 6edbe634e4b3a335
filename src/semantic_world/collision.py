"""
Collision world interface for table solids.

The registry only builds these messages; delivering them to a planning scene
is the job of a CollisionWorldSink implementation.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import trimesh

from semantic_world.contracts import Pose


class CollisionOperation(Enum):
    """What the collision world should do with an object."""
    ADD = "add"
    REMOVE = "remove"


@dataclass(eq=False)
class CollisionObject:
    """A named solid placed at a pose; ``mesh`` is None for removals."""
    object_id: str
    frame_id: str
    pose: Pose
    operation: CollisionOperation = CollisionOperation.ADD
    mesh: Optional[trimesh.Trimesh] = None


@dataclass
class PlanningSceneDiff:
    """Ordered batch of collision object changes applied as one scene diff."""
    collision_objects: List[CollisionObject] = field(default_factory=list)
    is_diff: bool = True

    def object_ids(self, operation: CollisionOperation) -> List[str]:
        return [obj.object_id for obj in self.collision_objects if obj.operation is operation]


class CollisionWorldSink(ABC):
    """Receiver of planning scene diffs (e.g. a planning scene publisher)."""

    @abstractmethod
    def apply_planning_scene_diff(self, diff: PlanningSceneDiff) -> None:
        pass
