"""Apply hunks to a live buffer with the fewest line-range writes."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from morph_engine.buffer.sync import BufferValidationError, LineStore
from morph_engine.runtime import telemetry

from .hunk import Hunk

Edit = Tuple[int, int, Sequence[str]]


def mutation_range(hunk: Hunk, offset: int) -> Tuple[int, int]:
    """Translate ``hunk`` into a 0-based ``[start, stop)`` range of the current buffer.

    ``offset`` is the line-count delta introduced by the hunks already applied.
    """

    if hunk.count_a == 0:
        # pure insertion lands right after line start_a
        start = hunk.start_a + offset
        return start, start
    start = hunk.start_a - 1 + offset
    return start, start + hunk.count_a


def replacement_lines(hunk: Hunk, target_lines: Sequence[str]) -> Sequence[str]:
    if hunk.count_b == 0:
        return ()
    start = hunk.start_b - 1
    lines = tuple(target_lines[start : start + hunk.count_b])
    if len(lines) != hunk.count_b:
        raise ValueError(
            f"{hunk.header()} reaches past the {len(target_lines)} target lines"
        )
    return lines


class Reconciler:
    """Turns a hunk list into ``set_lines`` calls on a buffer.

    Hunks are in original-buffer coordinates and must be applied in the given
    order: each one shifts the coordinates of everything after it. The whole
    list is checked before the first write, so a bad hunk anywhere leaves the
    buffer untouched.
    """

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._logger_name = logger_name

    def plan(
        self, line_count: int, target_lines: Sequence[str], hunks: Iterable[Hunk]
    ) -> List[Edit]:
        """Resolve ``hunks`` into edits against a buffer of ``line_count`` lines.

        Raises ``ValueError`` when a hunk reaches past ``target_lines`` and
        ``BufferValidationError`` when a range falls outside the buffer as it
        will be after the preceding edits.
        """

        edits: List[Edit] = []
        offset = 0
        for hunk in hunks:
            lines = replacement_lines(hunk, target_lines)
            start, stop = mutation_range(hunk, offset)
            if not 0 <= start <= stop <= line_count:
                raise BufferValidationError(
                    f"{hunk.header()} maps to [{start}, {stop}) "
                    f"outside {line_count} buffer lines",
                    start=start,
                    end=stop,
                )
            edits.append((start, stop, lines))
            line_count += len(lines) - (stop - start)
            offset += hunk.delta
        return edits

    def apply(
        self, buffer: LineStore, target_lines: Sequence[str], hunks: Iterable[Hunk]
    ) -> int:
        """Apply ``hunks`` to ``buffer``; return the number of hunks applied."""

        with telemetry.span(
            "reconcile::apply", logger_name=self._logger_name, component="reconciler"
        ) as handle:
            edits = self.plan(buffer.line_count, target_lines, hunks)
            handle.add_metadata("hunks", len(edits))
            for start, stop, lines in edits:
                buffer.set_lines(start, stop, lines)
        return len(edits)


def apply(buffer: LineStore, target_lines: Sequence[str], hunks: Iterable[Hunk]) -> int:
    return Reconciler().apply(buffer, target_lines, hunks)


__all__ = ["Edit", "Reconciler", "apply", "mutation_range", "replacement_lines"]
