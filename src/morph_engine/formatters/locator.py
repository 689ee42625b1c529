"""Lazy, memoized lookup of a formatter's configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence

RootProvider = Callable[[], Optional[Path]]

_UNRESOLVED = object()


def git_root(start: Optional[Path] = None) -> Optional[Path]:
    """Nearest ancestor of ``start`` (default: cwd) containing a ``.git`` entry."""

    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def working_root() -> Optional[Path]:
    return Path.cwd()


class ConfigLocator:
    """Searches root directories, in order, for the first candidate file name.

    The outcome is computed on the first ``resolve`` call and kept for the
    locator's lifetime, absence included.
    """

    def __init__(self, candidates: Sequence[str], roots: Sequence[RootProvider]) -> None:
        if not candidates:
            raise ValueError("ConfigLocator requires at least one candidate name")
        self.candidates = tuple(candidates)
        self.roots = tuple(roots)
        self._found: object = _UNRESOLVED
        self.lookups = 0

    def resolve(self) -> Optional[Path]:
        if self._found is _UNRESOLVED:
            self._found = self._search()
        return self._found  # type: ignore[return-value]

    def reset(self) -> None:
        self._found = _UNRESOLVED

    def _search(self) -> Optional[Path]:
        self.lookups += 1
        for provider in self.roots:
            root = provider()
            if root is None:
                continue
            for basename in self.candidates:
                path = root / basename
                if path.is_file():
                    return path
        return None


def standard_locator(candidates: Sequence[str], config_root: Path) -> ConfigLocator:
    """Version-control root, then working directory, then ``config_root``."""

    return ConfigLocator(candidates, (git_root, working_root, lambda: config_root))


__all__ = ["ConfigLocator", "git_root", "working_root", "standard_locator"]
