"""Boundary types between the pipeline and whatever hosts the buffer."""

from __future__ import annotations

from pathlib import Path
from typing import ContextManager, Optional, Protocol, Sequence

from .state import Window


class LineStore(Protocol):
    """The slice of a buffer the reconciler needs: ranged line reads and writes."""

    @property
    def line_count(self) -> int: ...

    def get_lines(self, start: int, end: int) -> Sequence[str]: ...

    def set_lines(self, start: int, end: int, lines: Sequence[str]) -> None: ...


class BufferHost(LineStore, Protocol):
    """Everything the orchestrator asks of an editor buffer."""

    handle: int
    filetype: str
    path: Optional[Path]

    @property
    def changedtick(self) -> int:
        """Counter bumped by every edit; equal ticks mean identical content."""
        ...

    @property
    def modified(self) -> bool: ...

    @property
    def windows(self) -> Sequence[Window]: ...

    def lines(self) -> Sequence[str]: ...

    def undo_block(self, label: str) -> ContextManager[None]: ...

    def save(self) -> None: ...


class BufferValidationError(RuntimeError):
    """Raised when a line range falls outside the buffer."""

    def __init__(
        self, message: str, *, start: int | None = None, end: int | None = None
    ) -> None:
        super().__init__(message)
        self.start = start
        self.end = end


__all__ = ["LineStore", "BufferHost", "BufferValidationError"]
