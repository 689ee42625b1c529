"""Buffer abstractions: line storage, windows, undo and viewport preservation."""

from .buffer import Buffer
from .document import BufferDocument, FileFormat, join_lines, split_lines
from .filetype import detect_filetype
from .state import Cursor, ViewState, Window
from .sync import BufferHost, BufferValidationError, LineStore
from .undo import UndoEntry, UndoTimeline
from .validation import ensure_range
from .views import around, preserved_views

__all__ = [
    "Buffer",
    "BufferDocument",
    "BufferHost",
    "BufferValidationError",
    "FileFormat",
    "Cursor",
    "LineStore",
    "UndoEntry",
    "UndoTimeline",
    "ViewState",
    "Window",
    "around",
    "detect_filetype",
    "ensure_range",
    "join_lines",
    "preserved_views",
    "split_lines",
]
