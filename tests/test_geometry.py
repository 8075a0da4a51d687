"""Tests for flip_matching_app.geometry grid helpers and exact predicates."""

import pytest

from flip_matching_app.geometry import (
    Point,
    Segment,
    collinear,
    find_crossings,
    is_on_grid,
    quantize,
    segments_cross,
    would_create_collinearity,
    would_cross,
)


class TestQuantize:
    def test_snaps_to_nearest_multiple(self):
        assert quantize(31, 49, 20) == Point(40, 40)
        assert quantize(9, 11, 20) == Point(0, 20)

    def test_halves_round_up(self):
        assert quantize(50, 10, 20) == Point(60, 20)

    def test_returns_integers(self):
        point = quantize(19.6, 0.2, 20)
        assert isinstance(point.x, int)
        assert isinstance(point.y, int)


class TestIsOnGrid:
    def test_inside_and_aligned(self):
        assert is_on_grid(Point(40, 60), 20, 1200, 700)

    def test_board_edges_are_allowed(self):
        assert is_on_grid(Point(0, 0), 20, 1200, 700)
        assert is_on_grid(Point(1200, 700), 20, 1200, 700)

    def test_outside_board(self):
        assert not is_on_grid(Point(1220, 40), 20, 1200, 700)
        assert not is_on_grid(Point(40, -20), 20, 1200, 700)

    def test_misaligned(self):
        assert not is_on_grid(Point(41, 60), 20, 1200, 700)


class TestSegment:
    def test_equality_ignores_endpoint_order(self):
        a, b = Point(0, 0), Point(3, 1)
        assert Segment(a, b) == Segment(b, a)
        assert hash(Segment(a, b)) == hash(Segment(b, a))

    def test_normalized_orders_by_x_then_y(self):
        seg = Segment(Point(3, 1), Point(0, 0)).normalized()
        assert seg.start == Point(0, 0)
        assert seg.end == Point(3, 1)

        vertical = Segment(Point(2, 5), Point(2, 1)).normalized()
        assert vertical.start == Point(2, 1)

    def test_other_endpoint(self):
        seg = Segment(Point(0, 0), Point(3, 1))
        assert seg.other(Point(0, 0)) == Point(3, 1)
        with pytest.raises(ValueError):
            seg.other(Point(9, 9))

    def test_rejects_degenerate_segment(self):
        with pytest.raises(ValueError, match="distinct"):
            Segment(Point(1, 1), Point(1, 1))


class TestCollinear:
    def test_points_on_a_line(self):
        assert collinear(Point(0, 0), Point(1, 1), Point(2, 2))
        assert collinear(Point(0, 0), Point(20, 0), Point(60, 0))

    def test_general_position(self):
        assert not collinear(Point(0, 0), Point(1, 1), Point(2, 3))

    def test_would_create_collinearity_needs_two_points(self):
        assert not would_create_collinearity(Point(2, 2), [])
        assert not would_create_collinearity(Point(2, 2), [Point(0, 0)])

    def test_would_create_collinearity_scans_all_pairs(self):
        existing = [Point(0, 5), Point(0, 0), Point(7, 1), Point(4, 4)]
        assert would_create_collinearity(Point(8, 8), existing)
        assert not would_create_collinearity(Point(8, 9), existing)


class TestSegmentsCross:
    def test_proper_crossing(self):
        a = Segment(Point(0, 0), Point(4, 4))
        b = Segment(Point(0, 4), Point(4, 0))
        assert segments_cross(a, b)
        assert segments_cross(b, a)

    def test_shared_endpoint_is_not_a_crossing(self):
        a = Segment(Point(0, 0), Point(4, 4))
        b = Segment(Point(4, 4), Point(8, 0))
        assert not segments_cross(a, b)

    def test_disjoint_segments(self):
        a = Segment(Point(0, 0), Point(1, 3))
        b = Segment(Point(5, 0), Point(6, 3))
        assert not segments_cross(a, b)

    def test_would_cross_checks_every_segment(self):
        new = Segment(Point(0, 4), Point(4, 0))
        existing = [Segment(Point(10, 10), Point(12, 11)), Segment(Point(0, 0), Point(4, 4))]
        assert would_cross(new, existing)
        assert not would_cross(new, existing[:1])

    def test_find_crossings(self):
        segments = [
            Segment(Point(0, 0), Point(4, 4)),
            Segment(Point(10, 0), Point(11, 5)),
            Segment(Point(0, 4), Point(4, 0)),
        ]
        assert find_crossings(segments) == [(0, 2)]
