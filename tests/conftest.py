"""
Shared test fixtures for the semantic world tests.
"""
import math
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from semantic_world import Pose, SemanticWorld, Table

YAW_90 = (math.cos(math.pi / 4), 0.0, 0.0, math.sin(math.pi / 4))


@pytest.fixture
def unit_square():
    """A 1m square footprint centred on the origin, counter-clockwise."""
    return [(-0.5, -0.5), (0.5, -0.5), (0.5, 0.5), (-0.5, 0.5)]


@pytest.fixture
def l_footprint():
    """An L-shaped 2x2m footprint with the (1..2, 1..2) quadrant missing."""
    return [(0.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0), (1.0, 2.0), (0.0, 2.0)]


@pytest.fixture
def square_table(unit_square):
    """Unit square table with its surface at z=0.75."""
    return Table(name="square", pose=Pose(position=(0.0, 0.0, 0.75)), footprint=unit_square)


@pytest.fixture
def l_table(l_footprint):
    """L-shaped table with its surface at z=0.5, origin at (3, 0)."""
    return Table(name="l_shape", pose=Pose(position=(3.0, 0.0, 0.5)), footprint=l_footprint)


@pytest.fixture
def rotated_table():
    """A 2m x 0.5m table at (1, 2, 0.75), rotated 90 degrees about Z."""
    return Table(
        name="rotated",
        pose=Pose(position=(1.0, 2.0, 0.75), orientation=YAW_90),
        footprint=[(-1.0, -0.25), (1.0, -0.25), (1.0, 0.25), (-1.0, 0.25)],
    )


@pytest.fixture
def world(square_table, l_table):
    """A registry holding the square and L-shaped tables."""
    registry = SemanticWorld()
    registry.replace_all([square_table, l_table])
    return registry
