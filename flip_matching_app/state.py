"""Editing state machine for the matching under construction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence

import numpy as np

from .backend import Matching, canonical_form
from .config import GridConfig
from .geometry import (
    Point,
    PointKey,
    Segment,
    find_crossings,
    is_on_grid,
    would_create_collinearity,
    would_cross,
)
from .records import SavedState, matching_from_saved_state, saved_state_from_matching

logger = logging.getLogger(__name__)


class Rejection(Enum):
    """Reasons an edit can be refused; the value is the user-facing message."""

    OUT_OF_BOUNDS = "Points can only be placed on visible grid lines."
    DUPLICATE_POINT = "Cannot place points on top of each other!"
    COLLINEAR = "Cannot create collinear points!"
    CROSSING = "Cannot create segment that crosses other lines!"
    LOCKED = "The matching is locked; press edit to change it."
    NOT_LOCKED = "No locked matching available."
    INCOMPLETE_MATCHING = "Cannot save state! Incomplete matching."
    DUPLICATE_STATE = "Cannot save duplicate state!"
    TOO_FEW_POINTS = "Cannot make canonical! At least three points are required."
    CANONICAL_CROSSES = "Canonical pairing would create crossing segments."
    FLIP_IN_PROGRESS = "Finish the current flip first."
    NO_FLIP_IN_PROGRESS = "No segment has been removed for flipping."
    UNKNOWN_SEGMENT = "That segment is not part of the matching."
    NO_VALID_FLIP = "No valid flips possible for this line!"
    NOT_A_FREED_POINT = "Click on one of the freed points to connect!"
    INVALID_FLIP_TARGET = "This is not a valid flip point!"
    EVEN_POINT_COUNT = "Cannot generate matchings with an even number of points."
    NO_SAVED_STATE = "No saved state with that index."
    TOO_MANY_POINTS = "Cannot generate more points than available grid positions!"


@dataclass(frozen=True)
class EditResult:
    """Outcome of an editing operation; truthy on success."""

    ok: bool
    message: str
    reason: Rejection | None = None
    value: Any = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, message: str, value: Any = None) -> "EditResult":
        return cls(True, message, None, value)

    @classmethod
    def reject(cls, reason: Rejection, detail: str | None = None) -> "EditResult":
        message = reason.value if detail is None else f"{reason.value} {detail}"
        return cls(False, message, reason)


@dataclass(frozen=True)
class StateSnapshot:
    points: tuple[Point, ...]
    segments: tuple[Segment, ...]
    free_point: Point | None
    pending_point: Point | None
    locked: bool
    freed_points: tuple[Point, ...]
    valid_flip_points: tuple[Point, ...]
    removed_segment: Segment | None
    removed_index: int


class MatchingState:
    """The single mutable matching being edited.

    Every public mutator validates first and touches nothing when it rejects.
    """

    def __init__(self, grid: GridConfig | None = None) -> None:
        self.grid = grid if grid is not None else GridConfig()
        self._points: dict[PointKey, Point] = {}
        self._segments: list[Segment] = []
        self.free_point: Point | None = None
        self.pending_point: Point | None = None
        self.locked: bool = False
        self._freed_points: tuple[Point, ...] = ()
        self._valid_flip_points: tuple[Point, ...] = ()
        self._removed_segment: Segment | None = None
        self._removed_index: int = -1

    # ------------------------------------------------------------------
    # Read access
    @property
    def points(self) -> list[Point]:
        """Points in placement order."""

        return list(self._points.values())

    @property
    def segments(self) -> list[Segment]:
        return list(self._segments)

    @property
    def point_count(self) -> int:
        return len(self._points)

    @property
    def freed_points(self) -> tuple[Point, ...]:
        return self._freed_points

    @property
    def valid_flip_points(self) -> tuple[Point, ...]:
        return self._valid_flip_points

    @property
    def flip_in_progress(self) -> bool:
        return self._removed_segment is not None

    def has_point(self, point: Point) -> bool:
        return point.key in self._points

    def is_complete(self) -> bool:
        """True when the current content can be saved as a matching."""

        if not self._segments or self.flip_in_progress:
            return False
        return not self.to_matching().problems()

    def to_matching(self) -> Matching:
        return Matching(tuple(self._points.values()), tuple(self._segments), self.free_point)

    def points_array(self) -> np.ndarray:
        """Return an ``(n, 2)`` array of point coordinates."""

        if not self._points:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([p.key for p in self._points.values()], dtype=np.float64)

    def segments_array(self) -> np.ndarray:
        """Return an ``(m, 4)`` array of ``x1, y1, x2, y2`` rows."""

        if not self._segments:
            return np.empty((0, 4), dtype=np.float64)
        return np.array(
            [(s.start.x, s.start.y, s.end.x, s.end.y) for s in self._segments],
            dtype=np.float64,
        )

    # ------------------------------------------------------------------
    # Snapshots
    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            points=tuple(self._points.values()),
            segments=tuple(self._segments),
            free_point=self.free_point,
            pending_point=self.pending_point,
            locked=self.locked,
            freed_points=self._freed_points,
            valid_flip_points=self._valid_flip_points,
            removed_segment=self._removed_segment,
            removed_index=self._removed_index,
        )

    def restore(self, snapshot: StateSnapshot) -> None:
        self._points = {p.key: p for p in snapshot.points}
        self._segments = list(snapshot.segments)
        self.free_point = snapshot.free_point
        self.pending_point = snapshot.pending_point
        self.locked = snapshot.locked
        self._freed_points = snapshot.freed_points
        self._valid_flip_points = snapshot.valid_flip_points
        self._removed_segment = snapshot.removed_segment
        self._removed_index = snapshot.removed_index

    # ------------------------------------------------------------------
    # Building
    def clear(self) -> None:
        """Return to an empty, unlocked board."""

        self._points = {}
        self._segments = []
        self.free_point = None
        self.pending_point = None
        self.locked = False
        self._clear_flip()

    def place_point(self, point: Point) -> EditResult:
        """Add ``point``; pair it with the pending point when one is waiting."""

        if self.locked:
            return EditResult.reject(Rejection.LOCKED)
        grid = self.grid
        if not is_on_grid(point, grid.grid_size, grid.width, grid.height):
            return EditResult.reject(Rejection.OUT_OF_BOUNDS)
        if point.key in self._points:
            return EditResult.reject(Rejection.DUPLICATE_POINT)
        if would_create_collinearity(point, self._points.values()):
            return EditResult.reject(Rejection.COLLINEAR)

        if self.pending_point is None:
            self._points[point.key] = point
            self.pending_point = point
            self.free_point = self._sole_unmatched()
            return EditResult.success(f"Placed point {point}.", point)

        segment = Segment(self.pending_point, point)
        if would_cross(segment, self._segments):
            return EditResult.reject(Rejection.CROSSING)

        self._points[point.key] = point
        self._segments.append(segment)
        self.pending_point = None
        self.free_point = self._sole_unmatched()
        return EditResult.success(f"Connected {segment}.", segment)

    def _sole_unmatched(self) -> Point | None:
        """The free point: the only point outside every segment, if there is exactly one."""

        matched = {p for seg in self._segments for p in seg.endpoints}
        unmatched = [p for p in self._points.values() if p not in matched]
        return unmatched[0] if len(unmatched) == 1 else None

    def reset_to(
        self,
        points: Iterable[Point],
        segments: Iterable[Segment],
        *,
        pair_last: bool = True,
    ) -> None:
        """Replace the board with pre-validated content, unlocked.

        With ``pair_last`` and an odd point count the last point is free and
        pending, ready to be connected by the next placement.
        """

        self.clear()
        self._points = {p.key: p for p in points}
        self._segments = list(segments)
        if pair_last and len(self._points) % 2 == 1:
            last = list(self._points.values())[-1]
            self.free_point = last
            self.pending_point = last

    def load(self, saved: SavedState) -> None:
        """Rebuild the board from a saved record and lock it."""

        matching = matching_from_saved_state(saved, self.grid)
        self.clear()
        self._points = {p.key: p for p in matching.points}
        self._segments = list(matching.segments)
        self.free_point = matching.free_point
        self.locked = True

    # ------------------------------------------------------------------
    # Saving and locking
    def save(self, saved_states: Sequence[SavedState]) -> EditResult:
        """Validate the matching and lock it; ``value`` holds the new record.

        The caller owns the saved list and appends the record on success.
        """

        if self.flip_in_progress:
            return EditResult.reject(Rejection.FLIP_IN_PROGRESS)
        if not self.is_complete():
            return EditResult.reject(Rejection.INCOMPLETE_MATCHING)

        record = saved_state_from_matching(self.to_matching(), self.grid)
        if record in saved_states:
            return EditResult.reject(Rejection.DUPLICATE_STATE)

        self.locked = True
        self.pending_point = None
        logger.debug("Saved matching with %d segments.", record.segment_count)
        return EditResult.success("Successfully saved matching!", record)

    def edit(self) -> EditResult:
        """Unlock; the free point becomes the pending point."""

        if not self.locked:
            return EditResult.reject(Rejection.NOT_LOCKED)
        if self.flip_in_progress:
            return EditResult.reject(Rejection.FLIP_IN_PROGRESS)

        self.locked = False
        if self.free_point is not None:
            self.pending_point = self.free_point
        return EditResult.success("Unlocked matching for editing!")

    # ------------------------------------------------------------------
    # Flips
    def flip_targets(self, segment: Segment) -> list[Point]:
        """Endpoints of ``segment`` that can reconnect to the free point."""

        if self.free_point is None:
            return []
        others = [s for s in self._segments if s != segment]
        targets = []
        for endpoint in segment.endpoints:
            candidate = Segment(endpoint, self.free_point)
            if not would_cross(candidate, others):
                targets.append(endpoint)
        return targets

    def select_segment(self, segment: Segment) -> EditResult:
        """Remove ``segment`` to start a flip if it has a legal reconnection."""

        if not self.locked:
            return EditResult.reject(Rejection.NOT_LOCKED)
        if self.flip_in_progress:
            return EditResult.reject(Rejection.FLIP_IN_PROGRESS)
        if segment not in self._segments:
            return EditResult.reject(Rejection.UNKNOWN_SEGMENT)

        targets = self.flip_targets(segment)
        if not targets:
            return EditResult.reject(Rejection.NO_VALID_FLIP)

        index = self._segments.index(segment)
        removed = self._segments.pop(index)
        self._removed_segment = removed
        self._removed_index = index
        self._freed_points = removed.endpoints
        self._valid_flip_points = tuple(targets)
        return EditResult.success(f"Removed {removed}; pick a point to connect.", tuple(targets))

    def complete_flip(self, point: Point) -> EditResult:
        """Connect a freed point to the free point; the other one becomes free."""

        if not self.locked:
            return EditResult.reject(Rejection.NOT_LOCKED)
        removed = self._removed_segment
        if removed is None or self.free_point is None:
            return EditResult.reject(Rejection.NO_FLIP_IN_PROGRESS)
        if point not in self._freed_points:
            return EditResult.reject(Rejection.NOT_A_FREED_POINT)
        if point not in self._valid_flip_points:
            return EditResult.reject(Rejection.INVALID_FLIP_TARGET)

        new_segment = Segment(point, self.free_point)
        self._segments.append(new_segment)
        self.free_point = removed.other(point)
        self._clear_flip()
        return EditResult.success(
            f"Added {new_segment}; new free point {self.free_point}.", new_segment
        )

    def cancel_flip(self) -> EditResult:
        """Put the removed segment back where it was."""

        removed = self._removed_segment
        if removed is None:
            return EditResult.reject(Rejection.NO_FLIP_IN_PROGRESS)
        self._segments.insert(self._removed_index, removed)
        self._clear_flip()
        return EditResult.success("Flip cancelled.")

    def _clear_flip(self) -> None:
        self._freed_points = ()
        self._valid_flip_points = ()
        self._removed_segment = None
        self._removed_index = -1

    # ------------------------------------------------------------------
    # Canonical form
    def make_canonical(self) -> EditResult:
        """Replace the segments with the left-to-right canonical pairing."""

        if not self.locked:
            return EditResult.reject(Rejection.NOT_LOCKED)
        if self.flip_in_progress:
            return EditResult.reject(Rejection.FLIP_IN_PROGRESS)
        if len(self._points) < 3:
            return EditResult.reject(Rejection.TOO_FEW_POINTS)

        canonical = canonical_form(self.to_matching())
        crossings = find_crossings(canonical.segments)
        if crossings:
            return EditResult.reject(
                Rejection.CANONICAL_CROSSES, f"({len(crossings)} crossing pairs)"
            )

        self._segments = list(canonical.segments)
        self.free_point = canonical.free_point
        return EditResult.success("Successfully transformed to canonical matching!", canonical)
