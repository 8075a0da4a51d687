"""Saved matching records expressed in grid units with a bottom-up y axis.

Records written here carry ``segmentCount`` equal to the number of lines.
On import a count of twice the lines is also accepted, since the canvas app
stores its save-action records that way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .backend import Matching
from .config import GridConfig
from .geometry import Point, Segment

Number = int | float


@dataclass(frozen=True, order=True)
class GridPoint:
    x: Number
    y: Number

    def to_dict(self) -> dict[str, Number]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GridPoint":
        try:
            return cls(_as_number(data["x"]), _as_number(data["y"]))
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed point record: {data!r}") from exc


@dataclass(frozen=True, order=True)
class SavedLine:
    start: GridPoint
    end: GridPoint

    def normalized(self) -> "SavedLine":
        if self.start <= self.end:
            return self
        return SavedLine(self.end, self.start)

    def to_dict(self) -> dict[str, dict[str, Number]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SavedLine":
        try:
            return cls(GridPoint.from_dict(data["start"]), GridPoint.from_dict(data["end"]))
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed line record: {data!r}") from exc


@dataclass(frozen=True)
class SavedState:
    """A saved matching.

    Lines are kept normalised and sorted, so two records describing the same
    matching compare equal no matter the order the segments were drawn in.
    """

    lines: tuple[SavedLine, ...]
    free_point: GridPoint | None

    @property
    def segment_count(self) -> int:
        return len(self.lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "segmentCount": self.segment_count,
            "lines": [line.to_dict() for line in self.lines],
            "freePoint": None if self.free_point is None else self.free_point.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SavedState":
        if "lines" not in data:
            raise ValueError("Saved state record has no 'lines' entry.")
        lines = [SavedLine.from_dict(line) for line in data["lines"]]
        free_raw = data.get("freePoint")
        free_point = None if free_raw is None else GridPoint.from_dict(free_raw)
        state = cls(_sorted_lines(lines), free_point)

        # Records saved by the canvas app declare twice the line count.
        declared = data.get("segmentCount")
        accepted = (state.segment_count, 2 * state.segment_count)
        if declared is not None and int(declared) not in accepted:
            raise ValueError(
                f"segmentCount {declared} does not match {state.segment_count} lines."
            )
        return state


def _as_number(value: Any) -> Number:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected a number, got {value!r}.")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _sorted_lines(lines: list[SavedLine]) -> tuple[SavedLine, ...]:
    return tuple(sorted({line.normalized() for line in lines}))


def _scale_down(value: int, grid_size: int) -> Number:
    if value % grid_size == 0:
        return value // grid_size
    return value / grid_size


# ---------------------------------------------------------------------------
# Coordinate transforms
def to_grid(point: Point, grid: GridConfig) -> GridPoint:
    """Map a board point to grid units, flipping y to count rows from the bottom."""

    return GridPoint(
        _scale_down(point.x, grid.grid_size),
        grid.rows - _scale_down(point.y, grid.grid_size),
    )


def from_grid(point: GridPoint, grid: GridConfig) -> Point:
    """Inverse of :func:`to_grid`."""

    return Point(
        int(round(point.x * grid.grid_size)),
        int(round((grid.rows - point.y) * grid.grid_size)),
    )


def saved_state_from_matching(matching: Matching, grid: GridConfig) -> SavedState:
    lines = [SavedLine(to_grid(s.start, grid), to_grid(s.end, grid)) for s in matching.segments]
    free_point = None if matching.free_point is None else to_grid(matching.free_point, grid)
    return SavedState(_sorted_lines(lines), free_point)


def matching_from_saved_state(state: SavedState, grid: GridConfig) -> Matching:
    """Rebuild board points and segments; points are ordered as the lines list them."""

    registry: dict[Point, None] = {}
    segments: list[Segment] = []
    for line in state.lines:
        start = from_grid(line.start, grid)
        end = from_grid(line.end, grid)
        registry.setdefault(start)
        registry.setdefault(end)
        segments.append(Segment(start, end))

    free_point = None
    if state.free_point is not None:
        free_point = from_grid(state.free_point, grid)
        registry.setdefault(free_point)

    return Matching(tuple(registry), tuple(segments), free_point)
