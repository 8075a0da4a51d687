"""Tests for flip_matching_app.backend.enumerate_matchings."""

import pytest

from flip_matching_app import backend
from flip_matching_app.backend import Matching, enumerate_matchings, matching_key
from flip_matching_app.geometry import Point, Segment, find_crossings, segments_cross


def _perfect_matchings(points):
    if not points:
        yield []
        return
    first, rest = points[0], points[1:]
    for idx, partner in enumerate(rest):
        remainder = rest[:idx] + rest[idx + 1:]
        for tail in _perfect_matchings(remainder):
            yield [Segment(first, partner)] + tail


def _brute_force_keys(points):
    keys = set()
    for free in points:
        others = [p for p in points if p != free]
        for segments in _perfect_matchings(others):
            if not find_crossings(segments):
                keys.add(matching_key(segments))
    return keys


GENERIC_FIVE = [Point(0, 0), Point(10, 1), Point(5, 8), Point(4, 3), Point(8, 5)]


class TestEnumerationCompleteness:
    def test_convex_five_points(self, convex_points):
        result = enumerate_matchings(convex_points)
        # Each free point leaves four convex points with two non-crossing matchings.
        assert len(result) == 10
        assert not result.capped

    @pytest.mark.parametrize("points", [GENERIC_FIVE, [Point(i, i * i) for i in range(5)]])
    def test_matches_brute_force(self, points):
        result = enumerate_matchings(points)
        assert {m.key for m in result} == _brute_force_keys(points)

    def test_seven_points_against_brute_force(self):
        points = GENERIC_FIVE + [Point(2, 9), Point(11, 7)]
        result = enumerate_matchings(points)
        assert {m.key for m in result} == _brute_force_keys(points)

    def test_single_point(self):
        result = enumerate_matchings([Point(3, 3)])
        assert len(result) == 1
        assert result.matchings[0].free_point == Point(3, 3)
        assert result.matchings[0].segments == ()


class TestEnumerationInvariants:
    def test_every_matching_is_valid(self):
        points = GENERIC_FIVE + [Point(2, 9), Point(11, 7)]
        for matching in enumerate_matchings(points):
            assert matching.problems() == []

    def test_segments_are_normalized_and_sorted(self, convex_points):
        for matching in enumerate_matchings(convex_points):
            keys = [s.key for s in matching.segments]
            assert keys == sorted(keys)
            for seg in matching.segments:
                assert seg.start.key < seg.end.key

    def test_results_are_deduplicated(self):
        result = enumerate_matchings(GENERIC_FIVE)
        keys = [m.key for m in result]
        assert len(keys) == len(set(keys))

    def test_repeated_runs_agree(self):
        first = enumerate_matchings(GENERIC_FIVE)
        second = enumerate_matchings(GENERIC_FIVE)
        assert len(first) == len(second)
        assert sorted(m.key for m in first) == sorted(m.key for m in second)

    def test_free_point_is_the_unmatched_point(self, convex_points):
        for matching in enumerate_matchings(convex_points):
            matched = {p for s in matching.segments for p in s.endpoints}
            assert set(convex_points) - matched == {matching.free_point}


class TestEnumerationPreconditions:
    def test_even_point_count_is_refused(self):
        with pytest.raises(ValueError, match="even"):
            enumerate_matchings([Point(0, 0), Point(1, 3)])

    def test_empty_point_set_is_refused(self):
        with pytest.raises(ValueError, match="even"):
            enumerate_matchings([])

    def test_duplicates_are_refused(self):
        with pytest.raises(ValueError, match="duplicates"):
            enumerate_matchings([Point(0, 0), Point(0, 0), Point(1, 3)])


class TestEnumerationCap:
    def test_small_cap_is_respected(self):
        points = [Point(i, i * i) for i in range(7)]
        # 7 free points x Catalan(3) non-crossing matchings of the rest.
        assert len(enumerate_matchings(points)) == 35

        capped = enumerate_matchings(points, max_matchings=10)
        assert len(capped) == 10
        assert capped.capped

    def test_cap_above_total_is_not_reported(self):
        points = [Point(i, i * i) for i in range(7)]
        result = enumerate_matchings(points, max_matchings=36)
        assert len(result) == 35
        assert not result.capped

    def test_default_cap_on_large_point_set(self):
        # 15 convex points admit 15 * Catalan(7) = 6435 matchings.
        points = [Point(i, i * i) for i in range(15)]
        result = enumerate_matchings(points)
        assert len(result) == 5000
        assert result.capped
        assert len({m.key for m in result}) == 5000

    @pytest.mark.parametrize("points", [GENERIC_FIVE, [Point(i, i * i) for i in range(7)]])
    def test_cap_equal_to_total_is_not_reported(self, points):
        total = len(enumerate_matchings(points))
        exact = enumerate_matchings(points, max_matchings=total)
        assert len(exact) == total
        assert not exact.capped

        short = enumerate_matchings(points, max_matchings=total - 1)
        assert len(short) == total - 1
        assert short.capped

    def test_crossing_tests_follow_the_search(self, monkeypatch):
        calls = []

        def counting_cross(a, b):
            calls.append((a, b))
            return segments_cross(a, b)

        monkeypatch.setattr(backend, "segments_cross", counting_cross)
        points = [Point(i, i * i) for i in range(41)]
        result = enumerate_matchings(points, max_matchings=20)
        assert len(result) == 20
        assert result.capped
        # Every pair of the 820 candidate segments would be 335790 tests.
        assert len(calls) < 20_000

    def test_rejects_non_positive_cap(self):
        with pytest.raises(ValueError):
            enumerate_matchings([Point(0, 0)], max_matchings=0)


def test_matching_problems_reports_crossings_and_gaps():
    a, b, c, d, e = Point(0, 0), Point(4, 4), Point(0, 4), Point(4, 0), Point(9, 1)
    crossing = Matching((a, b, c, d, e), (Segment(a, b), Segment(c, d)), e)
    assert any("cross" in issue for issue in crossing.problems())

    incomplete = Matching((a, b, c, d, e), (Segment(a, b),), e)
    assert not incomplete.is_valid()
    assert sum("neither matched nor free" in issue for issue in incomplete.problems()) == 2
