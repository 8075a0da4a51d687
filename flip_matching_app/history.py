"""Bounded undo/redo stack of whole-session snapshots."""

from __future__ import annotations

from typing import Generic, TypeVar

from .config import HISTORY_LIMIT

T = TypeVar("T")


class HistoryManager(Generic[T]):
    """Keeps at most ``capacity`` snapshots and a pointer to the active one.

    Snapshots are stored as given and handed back wholesale on undo/redo, so
    callers must pass immutable values.
    """

    def __init__(self, capacity: int = HISTORY_LIMIT) -> None:
        if capacity < 1:
            raise ValueError("History capacity must be at least 1.")
        self._capacity = capacity
        self._entries: list[T] = []
        self._pointer: int = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def pointer(self) -> int:
        return self._pointer

    @property
    def entries(self) -> list[T]:
        return list(self._entries)

    def can_undo(self) -> bool:
        return self._pointer > 0

    def can_redo(self) -> bool:
        return self._pointer < len(self._entries) - 1

    def at_tip(self) -> bool:
        return self._pointer == len(self._entries) - 1

    def commit(self, snapshot: T) -> None:
        """Drop the redo branch, append ``snapshot`` and evict beyond capacity."""

        del self._entries[self._pointer + 1:]
        self._entries.append(snapshot)
        self._pointer += 1

        if len(self._entries) > self._capacity:
            del self._entries[0]
            self._pointer -= 1

    def discard_redo(self) -> None:
        """Forget every snapshot after the pointer."""

        del self._entries[self._pointer + 1:]

    def undo(self) -> T | None:
        if not self.can_undo():
            return None
        self._pointer -= 1
        return self._entries[self._pointer]

    def redo(self) -> T | None:
        if not self.can_redo():
            return None
        self._pointer += 1
        return self._entries[self._pointer]

    def clear(self) -> None:
        self._entries.clear()
        self._pointer = -1
