"""Shared point layouts for the matching tests."""

from __future__ import annotations

import pytest

from flip_matching_app.config import GridConfig
from flip_matching_app.geometry import Point
from flip_matching_app.state import MatchingState


@pytest.fixture
def unit_grid() -> GridConfig:
    """A 20x20 board with a grid pitch of 1, so raw coordinates are valid points."""

    return GridConfig(grid_size=1, width=20, height=20)


@pytest.fixture
def five_points() -> dict[str, Point]:
    """A(0,0) B(4,0) C(2,2) D(6,2) E(3,5): no three collinear."""

    return {
        "A": Point(0, 0),
        "B": Point(4, 0),
        "C": Point(2, 2),
        "D": Point(6, 2),
        "E": Point(3, 5),
    }


@pytest.fixture
def convex_points() -> list[Point]:
    """Five points on a parabola, in convex position."""

    return [Point(i, i * i) for i in range(5)]


@pytest.fixture
def locked_state(unit_grid, five_points) -> MatchingState:
    """Segments A-B and C-D with E free, saved and locked."""

    state = MatchingState(unit_grid)
    for name in "ABCDE":
        assert state.place_point(five_points[name])
    assert state.save([])
    return state


@pytest.fixture
def blocked_state(unit_grid) -> MatchingState:
    """Segment C-D sits below A-B while the free point E sits above it."""

    state = MatchingState(unit_grid)
    for x, y in [(0, 5), (10, 6), (4, 3), (7, 2), (5, 9)]:
        assert state.place_point(Point(x, y))
    assert state.save([])
    return state
