"""Buffer façade combining document storage, windows and undo history."""

from __future__ import annotations

import itertools
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from morph_engine.runtime import telemetry

from .document import BufferDocument, FileFormat, join_lines
from .filetype import detect_filetype
from .state import Cursor, Window
from .undo import UndoEntry, UndoTimeline
from .validation import ensure_range

_HANDLES = itertools.count(1)
_WINDOW_IDS = itertools.count(1000)


class Buffer:
    """In-memory editor buffer addressed by 0-based, end-exclusive line ranges."""

    def __init__(
        self,
        *,
        name: str = "scratch",
        document: Optional[BufferDocument] = None,
        path: Optional[Path] = None,
        filetype: Optional[str] = None,
        undo: Optional[UndoTimeline] = None,
        file_format: Optional[FileFormat] = None,
    ) -> None:
        self.handle = next(_HANDLES)
        self.name = name
        self.document = document if document is not None else BufferDocument()
        self.path = Path(path) if path is not None else None
        self.filetype = filetype if filetype is not None else detect_filetype(self.path)
        self.undo_history = undo if undo is not None else UndoTimeline()
        self.file_format = file_format if file_format is not None else FileFormat()
        self._windows: List[Window] = []

    @classmethod
    def from_text(
        cls, text: str, *, name: str = "scratch", filetype: str = ""
    ) -> "Buffer":
        return cls(name=name, document=BufferDocument.from_text(text), filetype=filetype)

    @classmethod
    def from_lines(
        cls, lines: Sequence[str], *, name: str = "scratch", filetype: str = ""
    ) -> "Buffer":
        document = BufferDocument(_lines=list(lines) or [""])
        return cls(name=name, document=document, filetype=filetype)

    @classmethod
    def from_file(cls, path: Path | str, *, filetype: Optional[str] = None) -> "Buffer":
        file_path = Path(path)
        raw = file_path.read_bytes().decode("utf-8")
        file_format = FileFormat.detect(raw)
        return cls(
            name=file_path.name,
            document=BufferDocument.from_text(file_format.decode(raw)),
            path=file_path,
            filetype=filetype,
            file_format=file_format,
        )

    def __repr__(self) -> str:
        return f"Buffer(handle={self.handle}, name={self.name!r}, filetype={self.filetype!r})"

    @property
    def changedtick(self) -> int:
        return self.document.version

    @property
    def modified(self) -> bool:
        return self.document.dirty

    @property
    def line_count(self) -> int:
        return self.document.line_count

    @property
    def windows(self) -> Sequence[Window]:
        return tuple(self._windows)

    def lines(self) -> Sequence[str]:
        return self.document.snapshot()

    def text(self) -> str:
        return join_lines(self.document.snapshot())

    def get_lines(self, start: int, end: int) -> Sequence[str]:
        start, end = ensure_range(self.document, start, end)
        return self.document.slice(start, end)

    def set_lines(self, start: int, end: int, lines: Sequence[str]) -> None:
        start, end = ensure_range(self.document, start, end)
        before = self.document.snapshot()
        self.document = self.document.update_lines(start, end, lines)
        self.undo_history.push(
            UndoEntry(
                label="set_lines",
                before_lines=before,
                after_lines=self.document.snapshot(),
            )
        )

    @contextmanager
    def undo_block(self, label: str) -> Iterator[None]:
        """Group every ``set_lines`` in the block into a single undo step."""

        self.undo_history.begin_group(label)
        try:
            yield
        finally:
            self.undo_history.end_group(self.document.snapshot())

    def undo(self) -> bool:
        entry = self.undo_history.undo()
        if entry is None:
            return False
        self.document = self.document.replace(lines=entry.before_lines, dirty=True)
        return True

    def redo(self) -> bool:
        entry = self.undo_history.redo()
        if entry is None:
            return False
        self.document = self.document.replace(lines=entry.after_lines, dirty=True)
        return True

    def attach_window(self, *, cursor: Cursor = (0, 0), topline: int = 0) -> Window:
        window = Window(
            id=next(_WINDOW_IDS), buffer_handle=self.handle, cursor=cursor, topline=topline
        )
        self._windows.append(window)
        return window

    def detach_window(self, window: Window) -> None:
        self._windows.remove(window)

    def save(self) -> None:
        """Write the buffer to its path in the line-ending style it was loaded with.

        Raises ``OSError`` on failure.
        """

        if self.path is None:
            raise ValueError(f"{self!r} has no file path to save to")
        with telemetry.span(
            "buffer::save",
            component="buffer",
            buffer=self.handle,
            metadata={"path": str(self.path)},
        ):
            self.path.write_bytes(self.file_format.encode(self.lines()).encode("utf-8"))
        self.document = self.document.mark_clean()


__all__ = ["Buffer"]
