"""Cursor and viewport state for windows showing a buffer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

Cursor = Tuple[int, int]  # (row, column), both 0-based


@dataclass(frozen=True, slots=True)
class ViewState:
    """Opaque per-window snapshot: cursor plus first visible line."""

    cursor: Cursor
    topline: int


@dataclass(slots=True)
class Window:
    """A viewport attached to one buffer."""

    id: int
    buffer_handle: int
    cursor: Cursor = (0, 0)
    topline: int = 0

    def set_cursor(self, row: int, col: int) -> None:
        self.cursor = (row, col)

    def save_view(self) -> ViewState:
        return ViewState(cursor=self.cursor, topline=self.topline)

    def restore_view(self, view: ViewState, *, line_count: int) -> None:
        # Positional restore: rows are only clamped, never remapped.
        last_row = max(line_count - 1, 0)
        row, col = view.cursor
        self.cursor = (min(row, last_row), col)
        self.topline = min(view.topline, last_row)


__all__ = ["Cursor", "ViewState", "Window"]
