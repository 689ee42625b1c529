"""Editor-facing entry points: reformat a buffer, list profiles."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from morph_engine.buffer import Buffer
from morph_engine.formatters import (
    ProfileRegistry,
    StepRegistry,
    load_default_profiles,
    load_default_steps,
)
from morph_engine.pipeline import Orchestrator, ReformatResult
from morph_engine.runtime import Regulator, Settings


class Session:
    """Tracks open buffers and the current one, and forwards to the orchestrator."""

    def __init__(self, orchestrator: Orchestrator) -> None:
        self.orchestrator = orchestrator
        self._buffers: Dict[int, Buffer] = {}
        self._current: Optional[int] = None

    @property
    def profiles(self) -> ProfileRegistry:
        return self.orchestrator.profiles

    @property
    def current_buffer(self) -> Optional[Buffer]:
        if self._current is None:
            return None
        return self._buffers.get(self._current)

    def open(self, buffer: Buffer, *, focus: bool = True) -> Buffer:
        self._buffers[buffer.handle] = buffer
        if focus or self._current is None:
            self._current = buffer.handle
        return buffer

    def close(self, buffer: Buffer) -> None:
        self._buffers.pop(buffer.handle, None)
        if self._current == buffer.handle:
            self._current = next(iter(self._buffers), None)

    def buffers(self) -> Iterable[Buffer]:
        return tuple(self._buffers.values())

    def reformat(
        self,
        buffer: Optional[Buffer] = None,
        content_kind: Optional[str] = None,
        profile_name: Optional[str] = None,
    ) -> ReformatResult:
        target = buffer or self.current_buffer
        if target is None:
            raise LookupError("no buffer to reformat")
        return self.orchestrator.run(target, content_kind, profile_name)

    async def reformat_async(
        self,
        buffer: Optional[Buffer] = None,
        content_kind: Optional[str] = None,
        profile_name: Optional[str] = None,
    ) -> ReformatResult:
        target = buffer or self.current_buffer
        if target is None:
            raise LookupError("no buffer to reformat")
        return await self.orchestrator.run_async(target, content_kind, profile_name)

    def available_profiles(self, content_kind: str) -> list[str]:
        return self.profiles.available_profiles(content_kind)

    def shutdown(self) -> None:
        self.orchestrator.close()


def create_default_session(
    settings: Optional[Settings] = None, *, regulator: Optional[Regulator] = None
) -> Session:
    """Build a Session with the built-in steps and profiles."""

    settings = settings if settings is not None else Settings.from_env()
    steps = StepRegistry(logger_name="morph_engine.formatters")
    load_default_steps(steps, settings=settings)
    profiles = ProfileRegistry(steps, logger_name="morph_engine.formatters")
    load_default_profiles(profiles)
    orchestrator = Orchestrator(profiles, settings=settings, regulator=regulator)
    return Session(orchestrator)


__all__ = ["Session", "create_default_session"]
