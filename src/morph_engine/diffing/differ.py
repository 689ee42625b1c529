"""Line diffs expressed as ``Hunk`` lists, built on ``difflib``."""

from __future__ import annotations

from difflib import SequenceMatcher
from typing import Sequence

from morph_engine.buffer.document import split_lines

from .hunk import Hunk, HunkList


def diff_lines(a: Sequence[str], b: Sequence[str]) -> HunkList:
    """Return the ordered hunks turning ``a`` into ``b``.

    Opcodes from ``SequenceMatcher`` are 0-based half-open ranges; they are
    mapped onto unified-diff coordinates, where an empty side points at the
    line preceding the change.
    """

    # autojunk would treat frequent lines (blank lines, closing braces) as
    # noise and produce far larger hunks on long files.
    matcher = SequenceMatcher(None, list(a), list(b), autojunk=False)
    hunks: HunkList = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        count_a = i2 - i1
        count_b = j2 - j1
        hunks.append(
            Hunk(
                start_a=i1 + 1 if count_a else i1,
                count_a=count_a,
                start_b=j1 + 1 if count_b else j1,
                count_b=count_b,
            )
        )
    return hunks


def diff(text_a: str, text_b: str) -> HunkList:
    return diff_lines(split_lines(text_a), split_lines(text_b))


__all__ = ["diff", "diff_lines"]
