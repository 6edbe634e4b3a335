"""Visualization markers for sampled place locations."""
import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from semantic_world.contracts import PlacePose, Pose, Vec3

logger = logging.getLogger(__name__)

PLACE_LOCATIONS_NAMESPACE = "place_locations"


@dataclass(frozen=True)
class Marker:
    """One visual marker; shape, scale and colour follow a fixed convention."""

    marker_id: int
    frame_id: str
    pose: Pose
    namespace: str = PLACE_LOCATIONS_NAMESPACE
    marker_type: str = "sphere"
    action: str = "add"
    scale: Vec3 = (0.02, 0.02, 0.02)
    color: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 1.0)  # rgba


def get_place_locations_marker(place_poses: Sequence[PlacePose]) -> List[Marker]:
    """Map each place pose to a small red sphere, ids following pose order."""
    logger.debug("Visualizing %d place poses", len(place_poses))
    return [
        Marker(marker_id=index, frame_id=place_pose.frame_id, pose=place_pose.pose)
        for index, place_pose in enumerate(place_poses)
    ]
