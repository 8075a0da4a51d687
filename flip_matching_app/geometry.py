"""Exact planar predicates on grid points and segments."""

from __future__ import annotations

import math
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Sequence

import numpy as np

from .config import COLLINEAR_TOLERANCE

PointKey = tuple[int, int]
SegmentKey = tuple[PointKey, PointKey]


@dataclass(frozen=True)
class Point:
    """A grid-aligned point; equality and hashing follow its coordinates."""

    x: int
    y: int

    @property
    def key(self) -> PointKey:
        return (self.x, self.y)

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


@dataclass(frozen=True, eq=False)
class Segment:
    """An unordered pair of points.

    Two segments compare equal when their endpoint sets match, regardless of
    which endpoint was stored as ``start``.
    """

    start: Point
    end: Point

    def __post_init__(self) -> None:
        if self.start == self.end:
            raise ValueError("Segment endpoints must be distinct.")

    def normalized(self) -> "Segment":
        """Return the segment with endpoints ordered by (x, y) ascending."""

        if self.start.key <= self.end.key:
            return self
        return Segment(self.end, self.start)

    @property
    def key(self) -> SegmentKey:
        a, b = self.start.key, self.end.key
        return (a, b) if a <= b else (b, a)

    @property
    def endpoints(self) -> tuple[Point, Point]:
        return (self.start, self.end)

    def touches(self, point: Point) -> bool:
        return point == self.start or point == self.end

    def other(self, point: Point) -> Point:
        """Return the endpoint opposite to ``point``."""

        if point == self.start:
            return self.end
        if point == self.end:
            return self.start
        raise ValueError(f"{point} is not an endpoint of this segment.")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Segment):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.start} -> {self.end}"


# ---------------------------------------------------------------------------
# Grid helpers
def quantize(x: float, y: float, grid_size: int) -> Point:
    """Snap a coordinate to the nearest multiple of ``grid_size``, halves rounding up."""

    return Point(
        math.floor(x / grid_size + 0.5) * grid_size,
        math.floor(y / grid_size + 0.5) * grid_size,
    )


def is_on_grid(point: Point, grid_size: int, width: int, height: int) -> bool:
    """Return True when ``point`` lies on a grid node inside the board."""

    inside = 0 <= point.x <= width and 0 <= point.y <= height
    aligned = point.x % grid_size == 0 and point.y % grid_size == 0
    return inside and aligned


# ---------------------------------------------------------------------------
# Predicates
def collinear(p1: Point, p2: Point, p3: Point, tolerance: float = COLLINEAR_TOLERANCE) -> bool:
    """Return True when the triangle ``p1 p2 p3`` has (near) zero area."""

    area = (p1.x * (p2.y - p3.y) + p2.x * (p3.y - p1.y) + p3.x * (p1.y - p2.y)) / 2
    return abs(area) < tolerance


def _orientation(p: Point, q: Point, r: Point) -> int:
    val = (q.y - p.y) * (r.x - q.x) - (q.x - p.x) * (r.y - q.y)
    if val == 0:
        return 0
    return 1 if val > 0 else -1


def segments_cross(a: Segment, b: Segment) -> bool:
    """Return True when two segments properly intersect.

    Segments that share an endpoint only touch and never count as crossing.
    Collinear overlaps are not handled; point placement rejects collinear
    triples before any segment can be drawn.
    """

    if a.start in (b.start, b.end) or a.end in (b.start, b.end):
        return False

    o1 = _orientation(a.start, a.end, b.start)
    o2 = _orientation(a.start, a.end, b.end)
    o3 = _orientation(b.start, b.end, a.start)
    o4 = _orientation(b.start, b.end, a.end)
    return o1 != o2 and o3 != o4


def would_create_collinearity(
    new_point: Point,
    existing_points: Iterable[Point],
    tolerance: float = COLLINEAR_TOLERANCE,
) -> bool:
    """Return True if ``new_point`` is collinear with any two existing points."""

    coords = np.array([p.key for p in existing_points], dtype=np.float64).reshape(-1, 2)
    if coords.shape[0] < 2:
        return False

    i_idx, j_idx = np.triu_indices(coords.shape[0], k=1)
    xi, yi = coords[i_idx, 0], coords[i_idx, 1]
    xj, yj = coords[j_idx, 0], coords[j_idx, 1]
    nx, ny = float(new_point.x), float(new_point.y)
    areas = np.abs(xi * (yj - ny) + xj * (ny - yi) + nx * (yi - yj)) / 2.0
    return bool(np.any(areas < tolerance))


def would_cross(new_segment: Segment, existing_segments: Iterable[Segment]) -> bool:
    """Return True if ``new_segment`` crosses any of ``existing_segments``."""

    return any(segments_cross(new_segment, seg) for seg in existing_segments)


def find_crossings(segments: Sequence[Segment]) -> list[tuple[int, int]]:
    """List index pairs ``(i, j)`` with ``i < j`` of crossing segments."""

    return [
        (i, j)
        for (i, a), (j, b) in combinations(enumerate(segments), 2)
        if segments_cross(a, b)
    ]
