"""Outcome of one reformat cycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from morph_engine.formatters.models import StepOutcome

Status = Literal[
    "ok",
    "unchanged",
    "throttled",
    "no_steps",
    "busy",
    "snapshot_failed",
    "step_failed",
    "persist_failed",
    "stale",
]

NOOP_STATUSES = frozenset({"unchanged", "throttled", "no_steps", "busy", "stale"})
FAILURE_STATUSES = frozenset({"snapshot_failed", "step_failed", "persist_failed"})


@dataclass(frozen=True, slots=True)
class ReformatResult:
    """What happened to a buffer during ``Orchestrator.run``.

    Failures never raise: they come back here with ``failed_step`` and the
    step's ``outcome`` (exit code and captured output) when a step was at fault.
    """

    status: Status
    buffer_handle: int
    content_kind: str = ""
    profile_name: str = ""
    message: str = ""
    hunks: int = 0
    failed_step: Optional[str] = None
    outcome: Optional[StepOutcome] = None

    @property
    def ok(self) -> bool:
        return self.status in ("ok", "unchanged")

    @property
    def failed(self) -> bool:
        return self.status in FAILURE_STATUSES

    @property
    def noop(self) -> bool:
        return self.status in NOOP_STATUSES


__all__ = ["ReformatResult", "Status", "NOOP_STATUSES", "FAILURE_STATUSES"]
