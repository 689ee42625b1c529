"""Formatter step contracts and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, runtime_checkable

from .process import ProcessResult


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """Result of running one step against a file."""

    step: str
    ok: bool
    reason: str = ""
    process: Optional[ProcessResult] = None

    @property
    def output(self) -> str:
        if self.process is None:
            return self.reason
        return self.process.tail()


@runtime_checkable
class FormatterStep(Protocol):
    """Rewrites the file at ``path`` in place.

    ``invoke`` is the bare contract; ``run`` carries the captured output the
    orchestrator reports when a step fails.
    """

    name: str

    def invoke(self, path: str) -> bool: ...

    def run(self, path: str) -> StepOutcome: ...


@dataclass(frozen=True, slots=True)
class Profile:
    content_kind: str
    profile_name: str
    steps: Sequence[FormatterStep]

    def __post_init__(self) -> None:
        if not self.content_kind:
            raise ValueError("profile content_kind cannot be empty")
        if not self.profile_name:
            raise ValueError("profile name cannot be empty")
        object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def step_names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.steps)


__all__ = ["FormatterStep", "Profile", "StepOutcome"]
