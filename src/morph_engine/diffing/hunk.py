"""Line-range edit instructions in unified-diff coordinates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True, slots=True)
class Hunk:
    """``count_a`` lines at ``start_a`` in A become ``count_b`` lines at ``start_b`` in B.

    Starts are 1-based. As in unified diffs, the side with a zero count names
    the line after which the change sits, so it may be ``0`` (an insertion
    before the first line, or a deletion of the leading lines).
    """

    start_a: int
    count_a: int
    start_b: int
    count_b: int

    def __post_init__(self) -> None:
        if self.count_a < 0 or self.count_b < 0:
            raise ValueError(f"hunk counts cannot be negative: {self}")
        if self.count_a == 0 and self.count_b == 0:
            raise ValueError(f"hunk must change at least one line: {self}")
        if self.start_a < 0 or self.start_b < 0:
            raise ValueError(f"hunk starts cannot be negative: {self}")
        if self.count_a and self.start_a == 0:
            raise ValueError(f"start_a must be 1-based when count_a > 0: {self}")
        if self.count_b and self.start_b == 0:
            raise ValueError(f"start_b must be 1-based when count_b > 0: {self}")

    @classmethod
    def from_tuple(cls, values: Tuple[int, int, int, int]) -> "Hunk":
        start_a, count_a, start_b, count_b = values
        return cls(start_a, count_a, start_b, count_b)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.start_a, self.count_a, self.start_b, self.count_b)

    @property
    def is_insertion(self) -> bool:
        return self.count_a == 0

    @property
    def is_deletion(self) -> bool:
        return self.count_b == 0

    @property
    def delta(self) -> int:
        """Net change in line count once the hunk is applied."""

        return self.count_b - self.count_a

    def header(self) -> str:
        return f"@@ -{self.start_a},{self.count_a} +{self.start_b},{self.count_b} @@"


HunkList = List[Hunk]

__all__ = ["Hunk", "HunkList"]
