"""
Semantic world: the registry of detected tables.

Holds the current table set as an immutable tuple. An incoming observation is
validated and transformed into the planning frame first, then swapped in
under a short lock, so every query works on either the old or the new
snapshot. The table callback runs after the lock is released and may query
the registry.
"""
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from semantic_world.collision import (
    CollisionObject,
    CollisionOperation,
    CollisionWorldSink,
    PlanningSceneDiff,
)
from semantic_world.containment import is_inside_table_contour, vertical_offset
from semantic_world.contracts import (
    IDENTITY_QUAT,
    DegenerateGeometryError,
    InvalidQueryError,
    PlacementRequest,
    PlacePose,
    Pose,
    Quat,
    SemanticWorldConfig,
    Table,
    TableArray,
    TableNotFoundError,
    to_quat,
)
from semantic_world.markers import Marker, get_place_locations_marker
from semantic_world.placement import resolve_object_defaults, sample_place_poses
from semantic_world.polygon_geometry import create_solid_mesh_from_planar_polygon, footprint_polygon
from semantic_world.shapes import ObjectShape

logger = logging.getLogger(__name__)

TableCallbackFn = Callable[[], None]
FrameResolver = Callable[[str], np.ndarray]
TableRef = Union[str, Table]


class SemanticWorld:
    """A (simple) semantic world representation: the known tables.

    Args:
        config: Registry and sampling defaults.
        frame_resolver: Returns the 4x4 transform from a frame into the
            planning frame. Raises KeyError for unknown frames. Only needed
            when tables arrive in a frame other than the planning frame.
    """

    def __init__(
        self,
        config: Optional[SemanticWorldConfig] = None,
        frame_resolver: Optional[FrameResolver] = None,
    ):
        self.config = config if config is not None else SemanticWorldConfig()
        self._frame_resolver = frame_resolver
        self._lock = threading.Lock()
        self._collision_lock = threading.Lock()
        self._tables: Tuple[Table, ...] = ()
        self._place_poses: Tuple[PlacePose, ...] = ()
        self._table_callback: Optional[TableCallbackFn] = None
        self._tables_in_collision_world: Dict[str, CollisionObject] = {}

    # ─── Table set ───────────────────────────────────────────────────────────

    @property
    def tables(self) -> Tuple[Table, ...]:
        """Current table snapshot."""
        with self._lock:
            return self._tables

    @property
    def place_poses(self) -> Tuple[PlacePose, ...]:
        """Place poses from the most recent registry-level generation."""
        with self._lock:
            return self._place_poses

    def add_table_callback(self, table_callback: Optional[TableCallbackFn]) -> None:
        """Register the table-set-changed observer, replacing any previous one."""
        with self._lock:
            self._table_callback = table_callback

    def table_callback(self, table_array: TableArray) -> None:
        """Entry point for the table detector feed."""
        tables: Iterable[Table] = table_array.tables
        if table_array.frame_id is not None:
            tables = [table.with_pose(table.pose, table_array.frame_id) for table in tables]
        self.replace_all(tables)

    def replace_all(self, tables: Iterable[Table]) -> None:
        """Replace the whole table set.

        Raises:
            DegenerateGeometryError: a footprint is invalid.
            InvalidQueryError: duplicate names or a frame that cannot be resolved.

        On error the previous table set stays in place.
        """
        prepared = tuple(self._transform_table(table) for table in tables)
        seen = set()
        for table in prepared:
            if table.name in seen:
                raise InvalidQueryError(f"Duplicate table name: {table.name}")
            seen.add(table.name)
            footprint_polygon(table.footprint, self.config.area_epsilon)

        with self._lock:
            self._tables = prepared
            callback = self._table_callback
        logger.info("Table set replaced: %d tables", len(prepared))

        if callback is not None:
            callback()

    def clear(self) -> None:
        with self._lock:
            self._tables = ()
            self._place_poses = ()
        logger.info("Table set cleared")

    def get_table(self, name: str) -> Table:
        for table in self.tables:
            if table.name == name:
                return table
        raise TableNotFoundError(name)

    # ─── Spatial queries ─────────────────────────────────────────────────────

    def get_tables_in_roi(
        self,
        minx: float, miny: float, minz: float,
        maxx: float, maxy: float, maxz: float,
    ) -> List[Table]:
        """Tables whose origin lies in the closed box, in snapshot order."""
        lower = np.array([minx, miny, minz], dtype=float)
        upper = np.array([maxx, maxy, maxz], dtype=float)
        if not (np.all(np.isfinite(lower)) and np.all(np.isfinite(upper))):
            raise InvalidQueryError(f"ROI bounds must be finite: {lower} {upper}")
        if np.any(lower > upper):
            raise InvalidQueryError(f"ROI is inverted: min {lower.tolist()} max {upper.tolist()}")

        result = []
        for table in self.tables:
            origin = np.asarray(table.pose.position)
            if np.all(lower <= origin) and np.all(origin <= upper):
                result.append(table)
        return result

    def get_table_names_in_roi(
        self,
        minx: float, miny: float, minz: float,
        maxx: float, maxy: float, maxz: float,
    ) -> List[str]:
        return [table.name for table in self.get_tables_in_roi(minx, miny, minz, maxx, maxy, maxz)]

    def is_inside_table_contour(
        self,
        pose: Pose,
        table: TableRef,
        min_distance_from_edge: float = 0.0,
        min_vertical_offset: float = 0.0,
    ) -> bool:
        return is_inside_table_contour(
            pose, self._resolve_table(table), min_distance_from_edge, min_vertical_offset,
        )

    def find_object_table(
        self,
        pose: Pose,
        min_distance_from_edge: float = 0.0,
        min_vertical_offset: float = 0.0,
    ) -> Optional[str]:
        """Name of the table the pose rests on, or None.

        When several tables qualify, the one with the smallest non-negative
        vertical offset wins; equal offsets keep snapshot order.
        """
        best_name = None
        best_key = None
        for table in self.tables:
            if not is_inside_table_contour(pose, table, min_distance_from_edge, min_vertical_offset):
                continue
            offset = vertical_offset(pose, table)
            key = (offset < 0.0, abs(offset))
            if best_key is None or key < best_key:
                best_name, best_key = table.name, key
        return best_name

    # ─── Place poses ─────────────────────────────────────────────────────────

    def generate_place_poses(
        self,
        table: TableRef,
        resolution: float,
        height_above_table: float,
        delta_height: Optional[float] = None,
        num_heights: Optional[int] = None,
        min_distance_from_edge: Optional[float] = None,
        orientation: Quat = IDENTITY_QUAT,
    ) -> List[PlacePose]:
        """Grid-sample place poses with an explicit height and edge margin.

        Unset arguments fall back to the registry config.
        """
        request = self._build_request(
            resolution,
            height_above_table,
            orientation,
            delta_height,
            num_heights,
            self.config.default_min_distance_from_edge
            if min_distance_from_edge is None else min_distance_from_edge,
        )
        return self._sample(self._resolve_table(table), request)

    def generate_object_place_poses(
        self,
        table: TableRef,
        object_shape: ObjectShape,
        orientation: Quat,
        resolution: float,
        delta_height: Optional[float] = None,
        num_heights: Optional[int] = None,
    ) -> List[PlacePose]:
        """Grid-sample place poses sized for an object.

        The edge margin and height come from the object's extents at the
        given orientation. *table* may be a Table or the name of a known one.
        """
        resolved = self._resolve_table(table)
        min_distance_from_edge, height_above_table = resolve_object_defaults(object_shape, orientation)
        request = self._build_request(
            resolution, height_above_table, orientation, delta_height, num_heights,
            min_distance_from_edge,
        )
        return self._sample(resolved, request)

    def get_place_locations_marker(
        self, place_poses: Optional[Sequence[PlacePose]] = None,
    ) -> List[Marker]:
        """Markers for *place_poses*, or for the last generated poses."""
        if place_poses is None:
            place_poses = self.place_poses
        return get_place_locations_marker(place_poses)

    # ─── Collision world ─────────────────────────────────────────────────────

    def materialize_solids(self, thickness: Optional[float] = None) -> Dict[str, CollisionObject]:
        """Extrude every known table into an ADD collision object, keyed by name."""
        if thickness is None:
            thickness = self.config.table_thickness
        solids: Dict[str, CollisionObject] = {}
        for table in self.tables:
            try:
                mesh = create_solid_mesh_from_planar_polygon(
                    table.footprint, thickness, self.config.area_epsilon,
                )
            except DegenerateGeometryError as exc:
                logger.warning("Could not build a solid for table %s: %s", table.name, exc)
                raise
            solids[table.name] = CollisionObject(
                object_id=table.name,
                frame_id=table.frame_id,
                pose=table.pose,
                operation=CollisionOperation.ADD,
                mesh=mesh,
            )
        return solids

    def add_tables_to_collision_world(
        self,
        sink: CollisionWorldSink,
        thickness: Optional[float] = None,
    ) -> PlanningSceneDiff:
        """Replace previously published table solids with the current ones.

        Builds a single diff that removes every table this registry published
        before and adds a solid for each current table, then hands it to
        *sink*. The sink is called after the registry lock is released and
        may publish again.
        """
        solids = self.materialize_solids(thickness)
        with self._collision_lock:
            diff = PlanningSceneDiff()
            for name, published in self._tables_in_collision_world.items():
                diff.collision_objects.append(CollisionObject(
                    object_id=name,
                    frame_id=published.frame_id,
                    pose=published.pose,
                    operation=CollisionOperation.REMOVE,
                ))
            diff.collision_objects.extend(solids.values())
            self._tables_in_collision_world = solids

        sink.apply_planning_scene_diff(diff)

        logger.info(
            "Published table solids: %d removed, %d added",
            len(diff.object_ids(CollisionOperation.REMOVE)),
            len(solids),
        )
        return diff

    # ─── Internal helpers ────────────────────────────────────────────────────

    def _resolve_table(self, table: TableRef) -> Table:
        if isinstance(table, Table):
            return table
        return self.get_table(table)

    def _build_request(
        self,
        resolution: float,
        height_above_table: float,
        orientation: Quat,
        delta_height: Optional[float],
        num_heights: Optional[int],
        min_distance_from_edge: float,
    ) -> PlacementRequest:
        return PlacementRequest(
            resolution=float(resolution),
            height_above_table=float(height_above_table),
            orientation=to_quat(orientation),
            delta_height=float(
                self.config.default_delta_height if delta_height is None else delta_height
            ),
            num_heights=int(
                self.config.default_num_heights if num_heights is None else num_heights
            ),
            min_distance_from_edge=float(min_distance_from_edge),
        )

    def _sample(self, table: Table, request: PlacementRequest) -> List[PlacePose]:
        place_poses = sample_place_poses(table, request)
        with self._lock:
            self._place_poses = tuple(place_poses)
        return place_poses

    def _transform_table(self, table: Table) -> Table:
        """Express a table's pose in the planning frame."""
        planning_frame = self.config.planning_frame
        if table.frame_id == planning_frame:
            return table
        if self._frame_resolver is None:
            raise InvalidQueryError(
                f"Table {table.name} is in frame {table.frame_id}, "
                f"no transform to {planning_frame} available"
            )
        try:
            transform = np.asarray(self._frame_resolver(table.frame_id), dtype=float)
        except KeyError as exc:
            raise InvalidQueryError(
                f"Unknown frame {table.frame_id} for table {table.name}"
            ) from exc
        pose = Pose.from_matrix(transform @ table.pose.to_matrix())
        return table.with_pose(pose, planning_frame)
