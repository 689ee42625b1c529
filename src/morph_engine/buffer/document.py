"""Line storage backing a buffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence


def split_lines(text: str) -> List[str]:
    """Split file content into lines the way an editor loads it.

    Only ``\\n`` separates lines and a single trailing newline does not open
    an extra empty line. ``str.splitlines`` is avoided on purpose: it also
    splits on form feeds and other separators formatters leave untouched.
    """

    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def join_lines(lines: Iterable[str], *, newline: str = "\n", eol: bool = True) -> str:
    """Serialize lines for disk.

    ``eol`` controls whether the last line is terminated as well.
    """

    items = list(lines)
    text = newline.join(items)
    if eol and items:
        text += newline
    return text


@dataclass(frozen=True, slots=True)
class FileFormat:
    """Line ending and final-newline convention of a file on disk."""

    newline: str = "\n"
    eol: bool = True

    @classmethod
    def detect(cls, raw: str) -> "FileFormat":
        newline = "\r\n" if "\r\n" in raw else "\n"
        return cls(newline=newline, eol=not raw or raw.endswith(newline))

    def decode(self, raw: str) -> str:
        if self.newline != "\n":
            return raw.replace(self.newline, "\n")
        return raw

    def encode(self, lines: Iterable[str]) -> str:
        return join_lines(lines, newline=self.newline, eol=self.eol)


@dataclass(slots=True)
class BufferDocument:
    """Versioned list-of-lines storage.

    Every mutation produces a new document with ``version`` bumped by one, so
    the version doubles as the buffer's change tick.
    """

    _lines: List[str] = field(default_factory=lambda: [""])
    version: int = 0
    dirty: bool = False

    @classmethod
    def from_text(cls, text: str) -> "BufferDocument":
        return cls(_lines=split_lines(text) or [""], version=0, dirty=False)

    def snapshot(self) -> Sequence[str]:
        """Return the current lines without exposing internal mutability."""

        return tuple(self._lines)

    def slice(self, start: int, end: int) -> Sequence[str]:
        return tuple(self._lines[start:end])

    def update_lines(
        self, start: int, end: int, new_lines: Iterable[str]
    ) -> "BufferDocument":
        """Return a document with ``[start:end]`` replaced by ``new_lines``."""

        lines = list(self._lines)
        lines[start:end] = list(new_lines)
        return BufferDocument(_lines=lines, version=self.version + 1, dirty=True)

    def replace(self, *, lines: Iterable[str], dirty: bool) -> "BufferDocument":
        return BufferDocument(_lines=list(lines), version=self.version + 1, dirty=dirty)

    def mark_clean(self) -> "BufferDocument":
        return BufferDocument(_lines=self._lines, version=self.version, dirty=False)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> str:
        return self._lines[index]
