"""Undo/redo history with support for grouped edits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass(frozen=True, slots=True)
class UndoEntry:
    label: str
    before_lines: Sequence[str]
    after_lines: Sequence[str]


class UndoTimeline:
    """Linear undo/redo history.

    ``begin_group``/``end_group`` fold every entry pushed in between into a
    single entry, so a multi-hunk reconciliation undoes in one step. Groups
    nest; only the outermost ``end_group`` commits.
    """

    def __init__(self) -> None:
        self._entries: List[UndoEntry] = []
        self._index: int = -1
        self._group_depth = 0
        self._group_label: Optional[str] = None
        self._group_before: Optional[Sequence[str]] = None

    def push(self, entry: UndoEntry) -> None:
        if self._group_depth:
            if self._group_before is None:
                self._group_before = entry.before_lines
            return
        self._append(entry)

    def begin_group(self, label: str) -> None:
        if self._group_depth == 0:
            self._group_label = label
            self._group_before = None
        self._group_depth += 1

    def end_group(self, after_lines: Sequence[str]) -> Optional[UndoEntry]:
        if self._group_depth == 0:
            raise RuntimeError("end_group called without begin_group")
        self._group_depth -= 1
        if self._group_depth:
            return None
        before = self._group_before
        label = self._group_label or "group"
        self._group_before = None
        self._group_label = None
        if before is None:
            return None
        entry = UndoEntry(label=label, before_lines=before, after_lines=after_lines)
        self._append(entry)
        return entry

    @property
    def in_group(self) -> bool:
        return self._group_depth > 0

    def __len__(self) -> int:
        return len(self._entries)

    def can_undo(self) -> bool:
        return self._index >= 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def undo(self) -> Optional[UndoEntry]:
        if not self.can_undo():
            return None
        entry = self._entries[self._index]
        self._index -= 1
        return entry

    def redo(self) -> Optional[UndoEntry]:
        if not self.can_redo():
            return None
        self._index += 1
        return self._entries[self._index]

    def _append(self, entry: UndoEntry) -> None:
        if self._index < len(self._entries) - 1:
            self._entries = self._entries[: self._index + 1]
        self._entries.append(entry)
        self._index = len(self._entries) - 1
