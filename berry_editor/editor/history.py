"""Two-stack undo/redo over opaque snapshots."""

from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class HistoryStack(Generic[T]):
    def __init__(self, are_equal: Callable[[T, T], bool] | None = None):
        self._are_equal = are_equal or (lambda a, b: a == b)
        self._past: list[T] = []
        self._future: list[T] = []

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def push(self, snapshot: T) -> None:
        """Record ``snapshot``; repeats of the newest entry are ignored."""
        if self._past and self._are_equal(self._past[-1], snapshot):
            return
        self._past.append(snapshot)
        self._future.clear()

    def undo(self, current: T) -> T | None:
        if not self._past:
            return None
        previous = self._past.pop()
        self._future.append(current)
        return previous

    def redo(self, current: T) -> T | None:
        if not self._future:
            return None
        following = self._future.pop()
        self._past.append(current)
        return following

    def can_undo(self) -> bool:
        return bool(self._past)

    def can_redo(self) -> bool:
        return bool(self._future)

    def __len__(self) -> int:
        return len(self._past)
