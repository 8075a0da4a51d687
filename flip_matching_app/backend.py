"""Matching solvers: exhaustive enumeration, canonical form and flip graphs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .config import MAX_MATCHINGS
from .geometry import Point, Segment, SegmentKey, find_crossings, segments_cross, would_cross

logger = logging.getLogger(__name__)

MatchingKey = tuple[SegmentKey, ...]


@dataclass(frozen=True)
class Matching:
    """Segments over an ordered point set with at most one unmatched point."""

    points: tuple[Point, ...]
    segments: tuple[Segment, ...]
    free_point: Point | None = None

    @property
    def point_set(self) -> frozenset[Point]:
        """All points the matching touches: segment endpoints plus the free point."""

        covered = {p for seg in self.segments for p in seg.endpoints}
        covered.update(self.points)
        if self.free_point is not None:
            covered.add(self.free_point)
        return frozenset(covered)

    @property
    def key(self) -> MatchingKey:
        return matching_key(self.segments)

    def normalized(self) -> "Matching":
        """Return a copy with normalised endpoints and sorted segments."""

        ordered = tuple(sorted((s.normalized() for s in self.segments), key=lambda s: s.key))
        return Matching(self.points, ordered, self.free_point)

    def problems(self) -> list[str]:
        """Describe every way this matching violates the matching invariants."""

        issues: list[str] = []
        if len(self.points) % 2 == 0:
            issues.append("point count is even")
        if self.free_point is None:
            issues.append("free point is missing")
        elif self.free_point not in self.points:
            issues.append(f"free point {self.free_point} is not in the point set")

        used: set[Point] = set()
        known = set(self.points)
        for seg in self.segments:
            for p in seg.endpoints:
                if p not in known:
                    issues.append(f"endpoint {p} is not in the point set")
                if p in used:
                    issues.append(f"point {p} is used by two segments")
                used.add(p)
        if self.free_point is not None and self.free_point in used:
            issues.append(f"free point {self.free_point} is also matched")

        unmatched = known - used - {self.free_point}
        for p in sorted(unmatched, key=lambda q: q.key):
            issues.append(f"point {p} is neither matched nor free")

        for i, j in find_crossings(self.segments):
            issues.append(f"segments {self.segments[i]} and {self.segments[j]} cross")
        return issues

    def is_valid(self) -> bool:
        return not self.problems()


def matching_key(segments: Iterable[Segment]) -> MatchingKey:
    """Deduplication key: sorted normalised segment keys."""

    return tuple(sorted(seg.key for seg in segments))


# ---------------------------------------------------------------------------
# Exhaustive enumeration
@dataclass
class EnumerationResult:
    matchings: list[Matching] = field(default_factory=list)
    capped: bool = False

    def __len__(self) -> int:
        return len(self.matchings)

    def __iter__(self):
        return iter(self.matchings)


def enumerate_matchings(
    points: Sequence[Point],
    max_matchings: int = MAX_MATCHINGS,
) -> EnumerationResult:
    """Return every non-crossing matching of ``points`` leaving one point free.

    The search is a depth-first backtracking over the unmatched points, kept
    on an explicit stack so that large inputs cannot exhaust the interpreter
    stack. Each step takes the first remaining point and either pairs it with
    another remaining point (when the new segment crosses nothing chosen so
    far) or, if no point has been left free yet, leaves it free. Crossing
    tests between candidate segments are cached as the search meets them.
    Results are keyed by :func:`matching_key`. The search stops when it
    reaches a distinct matching beyond the first ``max_matchings``, and
    ``capped`` is set only in that case, so a list that happens to hold
    exactly ``max_matchings`` matchings is still reported complete.
    """

    pts = tuple(points)
    if len(set(pts)) != len(pts):
        raise ValueError("Point set contains duplicates.")
    if len(pts) % 2 == 0:
        raise ValueError("Cannot enumerate matchings with an even number of points.")
    if max_matchings <= 0:
        raise ValueError("max_matchings must be positive.")

    segment_of: dict[tuple[int, int], Segment] = {}
    crossing: dict[tuple[tuple[int, int], tuple[int, int]], bool] = {}

    def _segment(pair: tuple[int, int]) -> Segment:
        if pair not in segment_of:
            segment_of[pair] = Segment(pts[pair[0]], pts[pair[1]])
        return segment_of[pair]

    def _crosses(p: tuple[int, int], q: tuple[int, int]) -> bool:
        key = (p, q) if p < q else (q, p)
        if key not in crossing:
            crossing[key] = segments_cross(_segment(p), _segment(q))
        return crossing[key]

    found: dict[MatchingKey, Matching] = {}
    capped = False
    # (remaining point indices, chosen index pairs, free point index)
    stack: list[tuple[tuple[int, ...], tuple[tuple[int, int], ...], int | None]] = [
        (tuple(range(len(pts))), (), None)
    ]

    while stack:
        remaining, chosen, free = stack.pop()

        if not remaining:
            segments = tuple(_segment(pair) for pair in chosen)
            key = matching_key(segments)
            if key in found:
                continue
            if len(found) >= max_matchings:
                capped = True
                break
            free_point = pts[free] if free is not None else None
            found[key] = Matching(pts, segments, free_point).normalized()
            continue

        first, rest = remaining[0], remaining[1:]
        children = []
        for idx, partner in enumerate(rest):
            candidate = (first, partner)
            if any(_crosses(candidate, pair) for pair in chosen):
                continue
            children.append((rest[:idx] + rest[idx + 1:], chosen + (candidate,), free))
        if free is None:
            children.append((rest, chosen, first))

        # Reversed so that children are expanded in generation order.
        stack.extend(reversed(children))

    logger.debug("Enumerated %d matchings on %d points (capped=%s).", len(found), len(pts), capped)
    return EnumerationResult(list(found.values()), capped)


# ---------------------------------------------------------------------------
# Canonical form
def canonical_form(matching: Matching) -> Matching:
    """Pair points left to right.

    Points are sorted by x (stable, so insertion order breaks ties). With an
    odd count the rightmost point becomes free and the rest are paired
    ``(0, 1), (2, 3), ...``; with an even count every point is paired. The
    result is a fixed convention and is not checked for crossings.
    """

    ordered = sorted(matching.points, key=lambda p: p.x)
    free_point: Point | None = None
    if len(ordered) % 2 == 1:
        free_point = ordered.pop()

    segments = tuple(Segment(ordered[i], ordered[i + 1]) for i in range(0, len(ordered), 2))
    return Matching(tuple(matching.points), segments, free_point)


# ---------------------------------------------------------------------------
# Flip graph
def is_one_flip_away(a: Matching, b: Matching) -> bool:
    """Return True if ``b`` results from ``a`` by a single flip.

    Exactly one segment of ``a`` must be missing from ``b`` and exactly one
    segment of ``b`` missing from ``a``. The added segment must end at the
    free point of ``a`` and must not cross the segments the two matchings
    share. Both matchings have to cover the same point set, which makes the
    relation symmetric.
    """

    if a.free_point is None or b.free_point is None:
        return False

    keys_a = {s.key for s in a.segments}
    keys_b = {s.key for s in b.segments}
    removed = [s for s in a.segments if s.key not in keys_b]
    added = [s for s in b.segments if s.key not in keys_a]
    if len(removed) != 1 or len(added) != 1:
        return False

    if a.point_set != b.point_set:
        return False

    removed_seg, added_seg = removed[0], added[0]
    if not added_seg.touches(a.free_point):
        return False

    others = [s for s in a.segments if s != removed_seg]
    return not would_cross(added_seg, others)


@dataclass
class FlipGraphNode:
    id: int
    matching: Matching
    neighbors: list[int] = field(default_factory=list)


@dataclass
class FlipGraph:
    nodes: list[FlipGraphNode] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> FlipGraphNode:
        return self.nodes[index]

    def edges(self) -> list[tuple[int, int]]:
        """Undirected edges ``(i, j)`` with ``i < j``."""

        return sorted(
            {(min(node.id, n), max(node.id, n)) for node in self.nodes for n in node.neighbors}
        )

    def is_symmetric(self) -> bool:
        lookup = {node.id: set(node.neighbors) for node in self.nodes}
        return all(node.id in lookup[n] for node in self.nodes for n in node.neighbors)

    def to_records(self) -> list[dict[str, object]]:
        """Serialise to plain dicts ready for ``json.dump``."""

        def _point(p: Point | None) -> dict[str, int] | None:
            return None if p is None else {"x": p.x, "y": p.y}

        return [
            {
                "id": node.id,
                "matching": {
                    "freePoint": _point(node.matching.free_point),
                    "segments": [
                        {"start": _point(s.start), "end": _point(s.end)}
                        for s in node.matching.segments
                    ],
                },
                "neighbors": list(node.neighbors),
            }
            for node in self.nodes
        ]


def build_flip_graph(matchings: Sequence[Matching]) -> FlipGraph:
    """Connect every pair of matchings that are one flip apart."""

    graph = FlipGraph()
    for i, current in enumerate(matchings):
        node = FlipGraphNode(id=i, matching=current)
        for j, other in enumerate(matchings):
            if i != j and is_one_flip_away(current, other):
                node.neighbors.append(j)
        graph.nodes.append(node)

    logger.debug("Built flip graph with %d nodes and %d edges.", len(graph), len(graph.edges()))
    return graph
