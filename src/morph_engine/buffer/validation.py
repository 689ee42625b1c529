"""Validation helpers shared across buffer services."""

from __future__ import annotations

from typing import Tuple

from .document import BufferDocument
from .sync import BufferValidationError


def ensure_range(document: BufferDocument, start: int, end: int) -> Tuple[int, int]:
    """Check a 0-based, end-exclusive line range against ``document``."""

    if start < 0 or end < start:
        raise BufferValidationError(
            f"Invalid line range [{start}, {end})", start=start, end=end
        )
    if end > document.line_count:
        raise BufferValidationError(
            f"Line range [{start}, {end}) exceeds {document.line_count} lines",
            start=start,
            end=end,
        )
    return start, end
