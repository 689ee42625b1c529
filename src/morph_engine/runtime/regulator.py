"""Per-key cooldown tracking used to debounce repeated reformat requests."""

from __future__ import annotations

import time
from typing import Callable, Dict, Hashable, Optional

from .settings import DEFAULT_COOLDOWN_MS

Clock = Callable[[], float]


class Regulator:
    """Answers whether a key was updated less than ``cooldown_ms`` ago.

    Purely advisory: nothing blocks or retries. Entries are created by
    ``update`` and live as long as the regulator does.
    """

    def __init__(
        self, cooldown_ms: int = DEFAULT_COOLDOWN_MS, *, clock: Optional[Clock] = None
    ) -> None:
        if cooldown_ms < 0:
            raise ValueError("cooldown_ms cannot be negative")
        self.cooldown_ms = cooldown_ms
        self._clock = clock or time.monotonic
        self._last_update: Dict[Hashable, float] = {}

    def throttled(self, key: Hashable) -> bool:
        last = self._last_update.get(key)
        if last is None:
            return False
        elapsed_ms = (self._clock() - last) * 1000.0
        return elapsed_ms < self.cooldown_ms

    def update(self, key: Hashable) -> None:
        self._last_update[key] = self._clock()

    def __len__(self) -> int:
        return len(self._last_update)


__all__ = ["Regulator", "Clock"]
