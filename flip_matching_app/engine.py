"""Editing session tying the matching state, history and saved matchings together."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable

import numpy as np

from .backend import FlipGraph, build_flip_graph, enumerate_matchings
from .config import HISTORY_LIMIT, MAX_MATCHINGS, MAX_SCALE, MIN_SCALE, ZOOM_STEP, GridConfig
from .export import format_saved_states
from .generators import Seed, generate_random_points
from .geometry import Point, Segment, is_on_grid, quantize, would_create_collinearity
from .history import HistoryManager
from .records import (
    GridPoint,
    SavedState,
    from_grid,
    matching_from_saved_state,
    saved_state_from_matching,
    to_grid,
)
from .state import EditResult, MatchingState, Rejection, StateSnapshot

logger = logging.getLogger(__name__)


class EngineError(RuntimeError):
    """Raised when the engine cannot complete a requested operation."""


@dataclass(frozen=True)
class ViewTransform:
    """Zoom and pan applied to the board on screen."""

    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def to_world(self, screen_x: float, screen_y: float) -> tuple[float, float]:
        return (screen_x - self.offset_x) / self.scale, (screen_y - self.offset_y) / self.scale

    def zoomed(self, zoom_in: bool, pointer_x: float, pointer_y: float) -> "ViewTransform":
        """Zoom by one step keeping the world point under the pointer fixed."""

        world_x, world_y = self.to_world(pointer_x, pointer_y)
        scale = self.scale * ZOOM_STEP if zoom_in else self.scale / ZOOM_STEP
        scale = min(max(scale, MIN_SCALE), MAX_SCALE)
        return ViewTransform(scale, pointer_x - world_x * scale, pointer_y - world_y * scale)

    def panned(self, dx: float, dy: float) -> "ViewTransform":
        return replace(self, offset_x=self.offset_x + dx, offset_y=self.offset_y + dy)


@dataclass(frozen=True)
class Snapshot:
    """Everything undo/redo restores."""

    state: StateSnapshot
    saved_states: tuple[SavedState, ...]
    view: ViewTransform


class Engine:
    """One editing session.

    Owns the matching under construction, its undo history, the list of
    saved matchings and the view transform. Rejected edits come back as falsy
    :class:`EditResult` values and are announced to status listeners; file
    problems raise :class:`EngineError`.
    """

    def __init__(
        self,
        grid: GridConfig | None = None,
        *,
        history_limit: int = HISTORY_LIMIT,
        max_matchings: int = MAX_MATCHINGS,
        rng: Seed = None,
    ) -> None:
        self.grid = grid if grid is not None else GridConfig()
        self.max_matchings = max_matchings
        self._state = MatchingState(self.grid)
        self._history: HistoryManager[Snapshot] = HistoryManager(history_limit)
        self._saved_states: list[SavedState] = []
        self._view = ViewTransform()
        self._rng = np.random.default_rng(rng)
        # True while the live session differs from the snapshot at the history pointer.
        self._live_ahead: bool = False
        self._status_listeners: list[Callable[[str], None]] = []
        self._refresh_callbacks: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Listener registration
    def register_status_listener(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with every status message."""

        self._status_listeners.append(callback)

    def add_refresh_action(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked when state changes."""

        self._refresh_callbacks.append(callback)
        callback()

    def refresh(self) -> None:
        for callback in list(self._refresh_callbacks):
            callback()

    # ------------------------------------------------------------------
    # Read access
    @property
    def state(self) -> MatchingState:
        return self._state

    @property
    def saved_states(self) -> list[SavedState]:
        return list(self._saved_states)

    @property
    def view(self) -> ViewTransform:
        return self._view

    @property
    def history(self) -> HistoryManager[Snapshot]:
        return self._history

    @property
    def locked(self) -> bool:
        return self._state.locked

    def points(self) -> np.ndarray:
        """Return an ``(n, 2)`` copy of the current point coordinates."""

        return self._state.points_array()

    def lines(self) -> np.ndarray:
        """Return an ``(m, 4)`` copy of the current segments."""

        return self._state.segments_array()

    # ------------------------------------------------------------------
    # Editing
    def click(self, screen_x: float, screen_y: float) -> EditResult:
        """Handle a left click: place a point, or finish a flip when locked."""

        world_x, world_y = self._view.to_world(screen_x, screen_y)
        point = quantize(world_x, world_y, self.grid.grid_size)
        if self._state.locked:
            return self.complete_flip(point)
        return self.place_point(point)

    def place_point(self, point: Point) -> EditResult:
        return self._run(lambda: self._state.place_point(point))

    def save_state(self) -> EditResult:
        """Save the current matching and lock it."""

        def action() -> EditResult:
            result = self._state.save(self._saved_states)
            if result:
                self._saved_states.append(result.value)
                logger.info("Saved matching %d.", len(self._saved_states))
            return result

        return self._run(action)

    def edit(self) -> EditResult:
        return self._run(self._state.edit)

    def select_segment(self, segment: Segment) -> EditResult:
        """Remove ``segment`` to start a flip; ``value`` lists valid targets."""

        return self._run(lambda: self._state.select_segment(segment))

    def select_segment_at(self, index: int) -> EditResult:
        segments = self._state.segments
        if not 0 <= index < len(segments):
            return self._announce(EditResult.reject(Rejection.UNKNOWN_SEGMENT))
        return self.select_segment(segments[index])

    def complete_flip(self, point: Point) -> EditResult:
        return self._run(lambda: self._state.complete_flip(point))

    def cancel_flip(self) -> EditResult:
        return self._run(self._state.cancel_flip)

    def make_canonical(self) -> EditResult:
        return self._run(self._state.make_canonical)

    def clear(self) -> EditResult:
        """Empty the board; saved matchings are kept."""

        def action() -> EditResult:
            self._state.clear()
            return EditResult.success("Canvas cleared!")

        return self._run(action)

    def clear_saved_states(self) -> EditResult:
        def action() -> EditResult:
            count = len(self._saved_states)
            self._saved_states.clear()
            return EditResult.success(f"Cleared {count} saved matchings.")

        return self._run(action)

    def load_state(self, index: int) -> EditResult:
        """Put saved matching ``index`` on the board, locked."""

        if not 0 <= index < len(self._saved_states):
            return self._announce(EditResult.reject(Rejection.NO_SAVED_STATE))

        def action() -> EditResult:
            self._state.load(self._saved_states[index])
            return EditResult.success(f"Loaded state {index + 1}.")

        return self._run(action)

    # ------------------------------------------------------------------
    # History
    def undo(self) -> bool:
        if self._live_ahead:
            self._history.commit(self._snapshot())
            self._live_ahead = False
        snapshot = self._history.undo()
        if snapshot is None:
            self._emit_status("Nothing to undo.")
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        if self._live_ahead:
            self._emit_status("Nothing to redo.")
            return False
        snapshot = self._history.redo()
        if snapshot is None:
            self._emit_status("Nothing to redo.")
            return False
        self._restore(snapshot)
        return True

    # ------------------------------------------------------------------
    # Solvers
    def generate_all_matchings(self) -> EditResult:
        """Enumerate every matching of the current points into the saved list.

        ``value`` holds the :class:`EnumerationResult`. Matchings that are
        already saved are not added twice.
        """

        points = self._state.points
        if len(points) % 2 == 0:
            return self._announce(EditResult.reject(Rejection.EVEN_POINT_COUNT))

        logger.info("Generating all matchings for %d points.", len(points))
        enumeration = enumerate_matchings(points, self.max_matchings)

        def action() -> EditResult:
            known = set(self._saved_states)
            added = 0
            for matching in enumeration:
                record = saved_state_from_matching(matching, self.grid)
                if record in known:
                    continue
                known.add(record)
                self._saved_states.append(record)
                added += 1
            message = f"Generated {len(enumeration)} matchings ({added} new)."
            if enumeration.capped:
                message += f" Capped at {self.max_matchings} matchings."
            return EditResult.success(message, enumeration)

        return self._run(action)

    def build_flip_graph(self) -> FlipGraph:
        """Flip graph over the saved matchings, rebuilt on every call."""

        matchings = [matching_from_saved_state(s, self.grid) for s in self._saved_states]
        graph = build_flip_graph(matchings)
        self._emit_status(
            f"Flip graph: {len(graph)} matchings, {len(graph.edges())} flips."
        )
        return graph

    def generate_random_points(self, count: int) -> EditResult:
        """Replace the board with ``count`` random points paired as they come."""

        try:
            generated = generate_random_points(count, self.grid, self._rng)
        except ValueError:
            return self._announce(EditResult.reject(Rejection.TOO_MANY_POINTS))

        def action() -> EditResult:
            self._state.reset_to(generated.points, generated.segments)
            if generated.exhausted:
                message = (
                    f"Generated only {len(generated.points)} of {count} points "
                    f"after {generated.attempts} attempts."
                )
            else:
                message = f"Generated {count} points."
            return EditResult.success(message, generated)

        return self._run(action)

    # ------------------------------------------------------------------
    # View
    def zoom(self, zoom_in: bool, pointer_x: float, pointer_y: float) -> None:
        self._view = self._view.zoomed(zoom_in, pointer_x, pointer_y)
        self.refresh()

    def pan(self, dx: float, dy: float) -> None:
        self._view = self._view.panned(dx, dy)
        self.refresh()

    def reset_view(self) -> None:
        self._view = ViewTransform()
        self.refresh()

    # ------------------------------------------------------------------
    # Files
    def export_saved_states(self, path: str, fmt: str = "json") -> None:
        """Write the saved matchings in one of the export formats."""

        try:
            content = format_saved_states(self._saved_states, fmt)
        except ValueError as exc:
            raise EngineError(str(exc)) from exc
        self._write_text(path, content)
        self._emit_status(f"Exported {len(self._saved_states)} matchings as {fmt}.")

    def save_flip_graph(self, path: str) -> FlipGraph:
        graph = self.build_flip_graph()
        self._write_text(path, json.dumps(graph.to_records(), indent=2))
        return graph

    def import_saved_states(self, path: str) -> int:
        """Append matchings from a JSON export; returns how many were new."""

        raw = self._read_text(path)
        try:
            data = json.loads(raw)
            records = [SavedState.from_dict(item) for item in data]
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            raise EngineError(f"Invalid matchings file: {exc}") from exc

        def action() -> EditResult:
            known = set(self._saved_states)
            added = 0
            for record in records:
                if record not in known:
                    known.add(record)
                    self._saved_states.append(record)
                    added += 1
            return EditResult.success(f"Imported {added} matchings.", added)

        return self._run(action).value

    def save_points(self, path: str) -> None:
        """Write the current points as ``x y`` grid coordinates, one per line."""

        rows = [to_grid(p, self.grid) for p in self._state.points]
        self._write_text(path, "".join(f"{p.x} {p.y}\n" for p in rows))
        self._emit_status(f"Saved {len(rows)} points.")

    def load_points(self, path: str) -> EditResult:
        """Replace the board with points read from a ``x y`` grid-coordinate file.

        Malformed lines are skipped; points that break grid placement rules
        make the whole load fail.
        """

        loaded: list[Point] = []
        for raw_line in self._read_text(path).splitlines():
            parts = raw_line.split()
            if len(parts) != 2:
                continue
            try:
                grid_point = GridPoint(float(parts[0]), float(parts[1]))
            except ValueError:
                continue
            point = from_grid(grid_point, self.grid)
            if not is_on_grid(point, self.grid.grid_size, self.grid.width, self.grid.height):
                raise EngineError(f"Point {raw_line.strip()} lies outside the board.")
            if point in loaded:
                raise EngineError(f"Point {raw_line.strip()} is listed twice.")
            if would_create_collinearity(point, loaded):
                raise EngineError(f"Point {raw_line.strip()} is collinear with two others.")
            loaded.append(point)

        def action() -> EditResult:
            self._state.reset_to(loaded, [], pair_last=False)
            return EditResult.success(f"Loaded {len(loaded)} points.", len(loaded))

        return self._run(action)

    # ------------------------------------------------------------------
    # Internal helpers
    def _run(self, action: Callable[[], EditResult]) -> EditResult:
        """Apply ``action`` and record the state it replaced when it succeeds."""

        before = self._snapshot()
        result = action()
        if result:
            if self._live_ahead or not len(self._history):
                self._history.commit(before)
            else:
                self._history.discard_redo()
            self._live_ahead = True
            self.refresh()
        return self._announce(result)

    def _announce(self, result: EditResult) -> EditResult:
        if not result:
            logger.debug("Rejected: %s", result.message)
        self._emit_status(result.message)
        return result

    def _emit_status(self, message: str) -> None:
        for callback in self._status_listeners:
            callback(message)

    def _snapshot(self) -> Snapshot:
        return Snapshot(self._state.snapshot(), tuple(self._saved_states), self._view)

    def _restore(self, snapshot: Snapshot) -> None:
        self._state.restore(snapshot.state)
        self._saved_states = list(snapshot.saved_states)
        self._view = snapshot.view
        self.refresh()

    @staticmethod
    def _write_text(path: str, content: str) -> None:
        if not path:
            raise EngineError("Invalid path for saving.")
        try:
            Path(path).write_text(content, encoding="utf-8")
        except OSError as exc:
            raise EngineError(f"Could not write {path}: {exc}") from exc

    @staticmethod
    def _read_text(path: str) -> str:
        if not path:
            raise EngineError("Invalid path for loading.")
        file_path = Path(path)
        if not file_path.exists():
            raise EngineError("File not found.")
        try:
            return file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise EngineError(f"Could not read {path}: {exc}") from exc
