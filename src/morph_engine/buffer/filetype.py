"""Content-kind detection from file names."""

from __future__ import annotations

from pathlib import PurePath
from typing import Mapping, Optional

EXTENSION_KINDS: Mapping[str, str] = {
    ".lua": "lua",
    ".zig": "zig",
    ".zon": "zig",
    ".py": "python",
    ".pyi": "python",
    ".go": "go",
    ".c": "c",
    ".h": "c",
    ".fish": "fish",
}

FILENAME_KINDS: Mapping[str, str] = {
    "config.fish": "fish",
}


def detect_filetype(path: Optional[PurePath | str]) -> str:
    """Return the content kind for ``path``, or ``""`` when unknown."""

    if path is None:
        return ""
    pure = PurePath(path)
    by_name = FILENAME_KINDS.get(pure.name)
    if by_name:
        return by_name
    return EXTENSION_KINDS.get(pure.suffix.lower(), "")


__all__ = ["detect_filetype", "EXTENSION_KINDS"]
