"""Viewport preservation around buffer mutations."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, List, Tuple, TypeVar

from .state import ViewState, Window
from .sync import BufferHost

T = TypeVar("T")


@contextmanager
def preserved_views(buffer: BufferHost) -> Iterator[List[Tuple[Window, ViewState]]]:
    """Capture every attached window's view and put it back on exit.

    Restoration is positional: a cursor below an edit that changed the line
    count keeps its old row, clamped to the buffer's last line.
    """

    captured = [(window, window.save_view()) for window in buffer.windows]
    try:
        yield captured
    finally:
        line_count = buffer.line_count
        for window, view in captured:
            window.restore_view(view, line_count=line_count)


def around(buffer: BufferHost, mutation: Callable[[], T]) -> T:
    with preserved_views(buffer):
        return mutation()


__all__ = ["preserved_views", "around"]
