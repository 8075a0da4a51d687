"""Tests for flip_matching_app.backend.canonical_form."""

from flip_matching_app.backend import Matching, canonical_form, enumerate_matchings
from flip_matching_app.geometry import Point, Segment, find_crossings


def _matching(five_points):
    p = five_points
    return Matching(
        tuple(p[name] for name in "ABCDE"),
        (Segment(p["A"], p["B"]), Segment(p["C"], p["D"])),
        p["E"],
    )


class TestCanonicalForm:
    def test_pairs_left_to_right(self, five_points):
        p = five_points
        canonical = canonical_form(_matching(five_points))
        # x order: A(0) C(2) E(3) B(4) D(6)
        assert canonical.segments == (Segment(p["A"], p["C"]), Segment(p["E"], p["B"]))
        assert canonical.free_point == p["D"]

    def test_keeps_point_order(self, five_points):
        original = _matching(five_points)
        assert canonical_form(original).points == original.points

    def test_idempotent(self, five_points):
        once = canonical_form(_matching(five_points))
        twice = canonical_form(once)
        assert twice == once

    def test_ties_keep_insertion_order(self):
        a, b, c = Point(5, 1), Point(5, 9), Point(0, 4)
        canonical = canonical_form(Matching((a, b, c), (Segment(a, c),), b))
        assert canonical.segments == (Segment(c, a),)
        assert canonical.free_point == b

        swapped = canonical_form(Matching((b, a, c), (Segment(a, c),), b))
        assert swapped.segments == (Segment(c, b),)
        assert swapped.free_point == a

    def test_even_count_pairs_everything(self):
        pts = (Point(0, 0), Point(3, 1), Point(1, 5), Point(4, 4))
        canonical = canonical_form(Matching(pts, (), None))
        assert canonical.free_point is None
        assert canonical.segments == (
            Segment(Point(0, 0), Point(1, 5)),
            Segment(Point(3, 1), Point(4, 4)),
        )

    def test_same_result_from_every_matching_of_a_point_set(self, convex_points):
        results = {canonical_form(m).normalized() for m in enumerate_matchings(convex_points)}
        assert len(results) == 1

    def test_general_position_output_is_crossing_free(self):
        pts = (Point(0, 0), Point(10, 1), Point(5, 8), Point(4, 3), Point(8, 5), Point(2, 9), Point(11, 7))
        canonical = canonical_form(Matching(pts, (), pts[0]))
        assert find_crossings(canonical.segments) == []
        assert canonical.normalized().is_valid()
