"""Text renderings of saved matchings for CSV, JSON and plain-text files."""

from __future__ import annotations

import csv
import io
import json
from typing import Callable, Sequence

from .records import GridPoint, SavedState

EXPORT_FORMATS: tuple[str, ...] = ("csv", "json", "txt", "named_csv", "pretty_txt")

DEFAULT_FILENAMES: dict[str, str] = {
    "csv": "matchings.csv",
    "json": "matchings.json",
    "txt": "matchings.txt",
    "named_csv": "matchings_named.csv",
    "pretty_txt": "matchings_readable.txt",
}


def _coord(value: object) -> str:
    return "" if value is None else str(value)


def to_csv(states: Sequence[SavedState]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(
        ["MatchingIndex", "SegmentIndex", "StartX", "StartY", "EndX", "EndY", "FreePointX", "FreePointY"]
    )
    for matching_index, state in enumerate(states):
        free = state.free_point
        for segment_index, line in enumerate(state.lines):
            writer.writerow(
                [
                    matching_index,
                    segment_index,
                    line.start.x,
                    line.start.y,
                    line.end.x,
                    line.end.y,
                    _coord(free.x if free else None),
                    _coord(free.y if free else None),
                ]
            )
    return buffer.getvalue()


def to_json(states: Sequence[SavedState]) -> str:
    return json.dumps([state.to_dict() for state in states], indent=2)


def to_txt(states: Sequence[SavedState]) -> str:
    lines: list[str] = []
    for i, state in enumerate(states, start=1):
        lines.append(f"Matching {i}:")
        for j, line in enumerate(state.lines, start=1):
            lines.append(
                f"  Segment {j}: ({line.start.x}, {line.start.y}) → ({line.end.x}, {line.end.y})"
            )
        if state.free_point is not None:
            lines.append(f"  Free Point: ({state.free_point.x}, {state.free_point.y})")
        lines.append("")
    return "\n".join(lines) + ("\n" if lines else "")


# ---------------------------------------------------------------------------
# Named-point formats
def point_name(index: int) -> str:
    """Spreadsheet-style names: A..Z, AA, AB, ..."""

    if index < 0:
        raise ValueError("index must be non-negative.")
    name = ""
    while True:
        name = chr(ord("A") + index % 26) + name
        index = index // 26 - 1
        if index < 0:
            return name


def assign_point_names(states: Sequence[SavedState]) -> dict[GridPoint, str]:
    """Name points in order of first appearance across all states."""

    names: dict[GridPoint, str] = {}

    def _visit(point: GridPoint) -> None:
        if point not in names:
            names[point] = point_name(len(names))

    for state in states:
        for line in state.lines:
            _visit(line.start)
            _visit(line.end)
        if state.free_point is not None:
            _visit(state.free_point)
    return names


def _names_header(names: dict[GridPoint, str]) -> str:
    listing = ", ".join(f"{name}=({p.x},{p.y})" for p, name in names.items())
    return f"PointNames: {listing}\n\n"


def to_named_csv(states: Sequence[SavedState]) -> str:
    names = assign_point_names(states)
    out = [_names_header(names), "MatchingIndex,SegmentIndex,StartPoint,EndPoint,FreePoint\n"]
    for matching_index, state in enumerate(states):
        free_name = names[state.free_point] if state.free_point is not None else ""
        for segment_index, line in enumerate(state.lines):
            out.append(
                f"{matching_index},{segment_index},{names[line.start]},{names[line.end]},{free_name}\n"
            )
    return "".join(out)


def to_pretty_txt(states: Sequence[SavedState]) -> str:
    names = assign_point_names(states)
    out = [_names_header(names)]
    for index, state in enumerate(states, start=1):
        out.append(f"Matching {index}:\n")
        for line in state.lines:
            out.append(f"  {names[line.start]} → {names[line.end]}\n")
        if state.free_point is not None:
            out.append(f"  Free: {names[state.free_point]}\n")
        out.append("\n")
    return "".join(out)


_FORMATTERS: dict[str, Callable[[Sequence[SavedState]], str]] = {
    "csv": to_csv,
    "json": to_json,
    "txt": to_txt,
    "named_csv": to_named_csv,
    "pretty_txt": to_pretty_txt,
}


def format_saved_states(states: Sequence[SavedState], fmt: str) -> str:
    try:
        formatter = _FORMATTERS[fmt]
    except KeyError as exc:
        raise ValueError(
            f"Unsupported export format {fmt!r}; expected one of {', '.join(EXPORT_FORMATS)}."
        ) from exc
    return formatter(states)
