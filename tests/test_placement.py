"""Tests for place pose sampling and object shape extents."""
import math

import numpy as np
import pytest
import trimesh

from semantic_world import (
    Box,
    Cone,
    Cylinder,
    InvalidQueryError,
    MeshShape,
    Pose,
    Sphere,
    Table,
    distance_to_nearest_edge,
    generate_object_place_poses,
    generate_place_poses,
    point_in_polygon,
)
from semantic_world.contracts import PlacementRequest
from semantic_world.placement import resolve_object_defaults, sample_place_poses

ROLL_90 = (math.cos(math.pi / 4), math.sin(math.pi / 4), 0.0, 0.0)


def _local_xy(place_pose, table):
    return table.pose.inverse_transform_point(place_pose.pose.position)[:2]


class TestGeneratePlacePoses:
    """Test grid sampling with explicit parameters."""

    def test_unit_square_keeps_only_centre(self, square_table):
        poses = generate_place_poses(
            square_table, resolution=0.5, height_above_table=0.1,
            num_heights=1, min_distance_from_edge=0.2,
        )
        assert len(poses) == 1
        np.testing.assert_allclose(poses[0].pose.position, (0.0, 0.0, 0.85))

    def test_every_pose_clears_the_margin(self, square_table, l_table):
        for table in (square_table, l_table):
            poses = generate_place_poses(
                table, resolution=0.1, height_above_table=0.05,
                num_heights=1, min_distance_from_edge=0.2,
            )
            assert poses
            for place_pose in poses:
                xy = _local_xy(place_pose, table)
                assert point_in_polygon(xy, table.footprint)
                assert distance_to_nearest_edge(xy, table.footprint) >= 0.2 - 1e-9

    def test_grid_order_x_then_y(self, square_table):
        poses = generate_place_poses(
            square_table, resolution=0.25, height_above_table=0.0,
            num_heights=1, min_distance_from_edge=0.1,
        )
        xy = [tuple(np.round(_local_xy(p, square_table), 6)) for p in poses]
        assert len(xy) == 9
        assert xy == sorted(xy)
        assert xy[:3] == [(-0.25, -0.25), (-0.25, 0.0), (-0.25, 0.25)]

    def test_stacked_heights(self, square_table):
        poses = generate_place_poses(
            square_table, resolution=0.5, height_above_table=0.1,
            delta_height=0.02, num_heights=3, min_distance_from_edge=0.2,
        )
        heights = [p.pose.position[2] for p in poses]
        assert heights == pytest.approx([0.85, 0.87, 0.89])

    def test_deterministic(self, l_table):
        kwargs = dict(resolution=0.1, height_above_table=0.05, min_distance_from_edge=0.15)
        first = generate_place_poses(l_table, **kwargs)
        second = generate_place_poses(l_table, **kwargs)
        assert first == second

    def test_l_shape_notch_is_empty(self, l_table):
        poses = generate_place_poses(
            l_table, resolution=0.25, height_above_table=0.0,
            num_heights=1, min_distance_from_edge=0.1,
        )
        for place_pose in poses:
            x, y = _local_xy(place_pose, l_table)
            assert not (x > 1.0 and y > 1.0)

    def test_empty_result_is_not_an_error(self, square_table):
        poses = generate_place_poses(
            square_table, resolution=0.1, height_above_table=0.0,
            min_distance_from_edge=0.6,
        )
        assert poses == []

    def test_rotated_table_pose_and_frame(self, rotated_table):
        orientation = (0.0, 0.0, 0.0, 1.0)
        poses = generate_place_poses(
            rotated_table, resolution=0.25, height_above_table=0.1,
            num_heights=1, min_distance_from_edge=0.2, orientation=orientation,
        )
        # Only the local centre line y=0 clears the margin, for |x| <= 0.75
        assert len(poses) == 7
        positions = np.array([p.pose.position for p in poses])
        np.testing.assert_allclose(positions[:, 0], 1.0, atol=1e-9)
        np.testing.assert_allclose(positions[:, 2], 0.85, atol=1e-9)
        np.testing.assert_allclose(positions[:, 1], np.linspace(1.25, 2.75, 7), atol=1e-9)
        np.testing.assert_allclose(poses[3].pose.position, (1.0, 2.0, 0.85), atol=1e-9)
        assert all(p.pose.orientation == orientation for p in poses)
        assert all(p.frame_id == rotated_table.frame_id for p in poses)

    @pytest.mark.parametrize("resolution", [0.0, -0.1])
    def test_invalid_resolution(self, square_table, resolution):
        with pytest.raises(InvalidQueryError):
            generate_place_poses(square_table, resolution=resolution, height_above_table=0.1)

    def test_invalid_num_heights(self, square_table):
        with pytest.raises(InvalidQueryError):
            generate_place_poses(square_table, resolution=0.1, height_above_table=0.1, num_heights=0)

    def test_sample_place_poses_matches_public_entry_point(self, square_table):
        request = PlacementRequest(resolution=0.2, height_above_table=0.1, min_distance_from_edge=0.1)
        assert sample_place_poses(square_table, request) == generate_place_poses(
            square_table, resolution=0.2, height_above_table=0.1, min_distance_from_edge=0.1,
        )


class TestObjectPlacePoses:
    """Test the shape-driven entry point."""

    def test_box_matches_explicit_call(self, square_table):
        box = Box(size=(0.2, 0.4, 0.1))
        from_shape = generate_object_place_poses(
            square_table, box, (1.0, 0.0, 0.0, 0.0), resolution=0.5, num_heights=1,
        )
        explicit = generate_place_poses(
            square_table, resolution=0.5, height_above_table=0.05,
            num_heights=1, min_distance_from_edge=0.2,
        )
        assert from_shape == explicit
        np.testing.assert_allclose(from_shape[0].pose.position, (0.0, 0.0, 0.80))

    def test_large_object_has_no_place(self, square_table):
        poses = generate_object_place_poses(
            square_table, Sphere(radius=0.6), (1.0, 0.0, 0.0, 0.0), resolution=0.05,
        )
        assert poses == []

    def test_orientation_is_carried(self, square_table):
        poses = generate_object_place_poses(
            square_table, Sphere(radius=0.1), ROLL_90, resolution=0.25,
        )
        assert poses
        assert all(p.pose.orientation == pytest.approx(ROLL_90) for p in poses)


class TestShapeExtents:
    """Test edge margin / height derived from shape bounds."""

    IDENTITY = (1.0, 0.0, 0.0, 0.0)

    def test_box(self):
        assert resolve_object_defaults(Box(size=(0.2, -0.4, 0.1)), self.IDENTITY) == pytest.approx((0.2, 0.05))

    def test_box_bounds_are_centred(self):
        lower, upper = Box(size=(0.2, 0.4, 0.1)).local_bounds()
        assert lower == pytest.approx((-0.1, -0.2, -0.05))
        assert upper == pytest.approx((0.1, 0.2, 0.05))

    def test_sphere(self):
        assert resolve_object_defaults(Sphere(radius=0.1), self.IDENTITY) == pytest.approx((0.1, 0.1))

    def test_cylinder_and_cone(self):
        cylinder = resolve_object_defaults(Cylinder(radius=0.05, length=0.3), self.IDENTITY)
        cone = resolve_object_defaults(Cone(radius=0.04, length=0.2), self.IDENTITY)
        assert cylinder == pytest.approx((0.05, 0.15))
        assert cone == pytest.approx((0.04, 0.1))

    def test_mesh_identity(self):
        shape = MeshShape(mesh=trimesh.creation.box(extents=[0.2, 0.4, 0.1]))
        assert resolve_object_defaults(shape, self.IDENTITY) == pytest.approx((0.2, 0.05))

    def test_mesh_rotated(self):
        # Rolling 90 degrees about X swaps the Y and Z extents
        shape = MeshShape(mesh=trimesh.creation.box(extents=[0.2, 0.4, 0.1]))
        assert resolve_object_defaults(shape, ROLL_90) == pytest.approx((0.1, 0.2))

    def test_mesh_resting_on_its_origin(self):
        mesh = trimesh.creation.box(extents=[0.1, 0.1, 0.3])
        mesh.apply_translation([0.0, 0.0, 0.15])
        margin, height = resolve_object_defaults(MeshShape(mesh=mesh), self.IDENTITY)
        assert margin == pytest.approx(0.05)
        assert height == pytest.approx(0.0, abs=1e-12)


def test_table_pose_translation_applies_to_every_pose(unit_square):
    table = Table(name="offset", pose=Pose(position=(2.0, -1.0, 0.4)), footprint=unit_square)
    poses = generate_place_poses(
        table, resolution=0.5, height_above_table=0.1, num_heights=1, min_distance_from_edge=0.2,
    )
    np.testing.assert_allclose(poses[0].pose.position, (2.0, -1.0, 0.5))
