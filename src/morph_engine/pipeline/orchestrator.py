"""Snapshot → external steps → diff → reconcile → save.

Formatting programs never see the live buffer: they rewrite a temporary copy,
and the buffer is only touched once every step has succeeded. A crashing or
misconfigured tool therefore leaves the buffer exactly as it was.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Set

from morph_engine.buffer.document import join_lines, split_lines
from morph_engine.buffer.sync import BufferHost
from morph_engine.buffer.views import preserved_views
from morph_engine.diffing.differ import diff_lines
from morph_engine.diffing.hunk import HunkList
from morph_engine.diffing.reconciler import Reconciler
from morph_engine.formatters.models import FormatterStep, StepOutcome
from morph_engine.formatters.registry import ProfileRegistry
from morph_engine.runtime import telemetry
from morph_engine.runtime.regulator import Regulator
from morph_engine.runtime.settings import Settings

from .results import ReformatResult, Status
from .worker import StepWorker

Differ = Callable[[Sequence[str], Sequence[str]], HunkList]

_EVENT_LEVELS = {
    "ok": "info",
    "unchanged": "debug",
    "throttled": "debug",
    "no_steps": "info",
    "busy": "debug",
    "snapshot_failed": "error",
    "step_failed": "warning",
    "persist_failed": "error",
    "stale": "warning",
}


@dataclass(slots=True)
class _Plan:
    buffer: BufferHost
    content_kind: str
    profile_name: str
    steps: tuple[FormatterStep, ...]
    tick: int = -1

    def result(self, status: Status, message: str = "", **extra: object) -> ReformatResult:
        return ReformatResult(
            status=status,
            buffer_handle=self.buffer.handle,
            content_kind=self.content_kind,
            profile_name=self.profile_name,
            message=message,
            **extra,  # type: ignore[arg-type]
        )


class Orchestrator:
    """Runs a profile's steps against a buffer snapshot and syncs the result back."""

    def __init__(
        self,
        profiles: ProfileRegistry,
        *,
        settings: Optional[Settings] = None,
        regulator: Optional[Regulator] = None,
        reconciler: Optional[Reconciler] = None,
        differ: Differ = diff_lines,
        worker: Optional[StepWorker] = None,
        logger_name: str | None = None,
    ) -> None:
        self.profiles = profiles
        self.settings = settings if settings is not None else Settings()
        self.regulator = (
            regulator if regulator is not None else Regulator(self.settings.cooldown_ms)
        )
        self.reconciler = (
            reconciler if reconciler is not None else Reconciler(logger_name=logger_name)
        )
        self.differ = differ
        self.worker = worker if worker is not None else StepWorker()
        self._logger_name = logger_name
        self.logger = telemetry.get_logger(logger_name or "morph_engine.pipeline")
        self._inflight: Set[int] = set()

    def run(
        self,
        buffer: BufferHost,
        content_kind: Optional[str] = None,
        profile_name: Optional[str] = None,
    ) -> ReformatResult:
        """Reformat ``buffer`` in place, blocking on each external step."""

        plan = self._plan(buffer, content_kind, profile_name)
        if isinstance(plan, ReformatResult):
            return self._report(plan)

        self._inflight.add(buffer.handle)
        try:
            with self._span(plan):
                snapshot = self._snapshot(plan)
                if isinstance(snapshot, ReformatResult):
                    return self._report(snapshot)
                try:
                    for step in plan.steps:
                        with self._step_span(plan, step):
                            outcome = step.run(snapshot)
                        if not outcome.ok:
                            return self._report(self._step_failed(plan, outcome))
                    return self._report(self._sync_back(plan, snapshot))
                finally:
                    self._cleanup(snapshot)
        finally:
            self._inflight.discard(buffer.handle)

    async def run_async(
        self,
        buffer: BufferHost,
        content_kind: Optional[str] = None,
        profile_name: Optional[str] = None,
    ) -> ReformatResult:
        """Same contract as ``run``; steps execute on the worker thread.

        Snapshot, reconciliation and saving stay on the calling thread, so
        the buffer is only ever touched from the event loop. Edits made while
        a step is running win: the cycle ends with ``stale`` and the
        formatted copy is dropped.
        """

        plan = self._plan(buffer, content_kind, profile_name)
        if isinstance(plan, ReformatResult):
            return self._report(plan)

        self._inflight.add(buffer.handle)
        try:
            with self._span(plan):
                snapshot = self._snapshot(plan)
                if isinstance(snapshot, ReformatResult):
                    return self._report(snapshot)
                try:
                    for step in plan.steps:
                        with self._step_span(plan, step):
                            outcome = await self.worker.run(step, snapshot)
                        if not outcome.ok:
                            return self._report(self._step_failed(plan, outcome))
                    return self._report(self._sync_back(plan, snapshot))
                finally:
                    self._cleanup(snapshot)
        finally:
            self._inflight.discard(buffer.handle)

    def close(self) -> None:
        self.worker.shutdown()

    def _plan(
        self,
        buffer: BufferHost,
        content_kind: Optional[str],
        profile_name: Optional[str],
    ) -> _Plan | ReformatResult:
        plan = _Plan(
            buffer=buffer,
            content_kind=content_kind or buffer.filetype,
            profile_name=profile_name or self.settings.default_profile,
            steps=(),
        )
        if buffer.handle in self._inflight:
            return plan.result("busy", "reformat already running for this buffer")
        if self.regulator.throttled(buffer.handle):
            return plan.result("throttled", "no change")

        plan.steps = self.profiles.lookup(plan.content_kind, plan.profile_name)
        if not plan.steps:
            return plan.result("no_steps", "no available formatting programs")

        self.logger.info(
            f"using ft={plan.content_kind}, profile={plan.profile_name}, "
            f"buf={buffer.handle}, steps={len(plan.steps)}"
        )
        return plan

    def _span(self, plan: _Plan):
        return telemetry.span(
            "pipeline::run",
            logger_name=self._logger_name,
            component="pipeline",
            buffer=plan.buffer.handle,
            metadata={"content_kind": plan.content_kind, "profile": plan.profile_name},
        )

    def _step_span(self, plan: _Plan, step: FormatterStep):
        return telemetry.span(
            "pipeline::step",
            logger_name=self._logger_name,
            buffer=plan.buffer.handle,
            step=step.name,
        )

    def _snapshot(self, plan: _Plan) -> str | ReformatResult:
        buffer = plan.buffer
        suffix = buffer.path.suffix if buffer.path is not None else ""
        tmp_dir = str(self.settings.tmp_dir) if self.settings.tmp_dir else None
        try:
            fd, path = tempfile.mkstemp(prefix="morph-", suffix=suffix, dir=tmp_dir)
        except OSError as exc:
            return plan.result("snapshot_failed", f"failed to dump buf#{buffer.handle}: {exc}")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(join_lines(buffer.lines()))
        except OSError as exc:
            self._cleanup(path)
            return plan.result("snapshot_failed", f"failed to dump buf#{buffer.handle}: {exc}")
        plan.tick = buffer.changedtick
        return path

    def _step_failed(self, plan: _Plan, outcome: StepOutcome) -> ReformatResult:
        output = outcome.output
        if output:
            self.logger.warning(f"{outcome.step} output:\n{output}")
        return plan.result(
            "step_failed",
            f"failed to run {outcome.step}: {outcome.reason}",
            failed_step=outcome.step,
            outcome=outcome,
        )

    def _sync_back(self, plan: _Plan, snapshot: str) -> ReformatResult:
        buffer = plan.buffer
        if buffer.changedtick != plan.tick:
            # the formatted copy no longer matches what is in the buffer
            return plan.result("stale", "buffer changed while formatting, result dropped")

        try:
            target = tuple(split_lines(Path(snapshot).read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError) as exc:
            return plan.result("snapshot_failed", f"failed to read formatted output: {exc}")

        hunks = self.differ(buffer.lines(), target)
        if hunks:
            with preserved_views(buffer), buffer.undo_block("reformat"):
                self.reconciler.apply(buffer, target, hunks)
        else:
            self.logger.debug("no need to patch")

        if buffer.path is not None and (hunks or buffer.modified):
            try:
                buffer.save()
            except OSError as exc:
                return plan.result(
                    "persist_failed", f"failed to save {buffer.path}: {exc}", hunks=len(hunks)
                )

        self.regulator.update(buffer.handle)
        if hunks:
            return plan.result("ok", f"applied {len(hunks)} hunk(s)", hunks=len(hunks))
        return plan.result("unchanged", "already formatted")

    def _cleanup(self, path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.warning(f"failed to remove {path}: {exc}")

    def _report(self, result: ReformatResult) -> ReformatResult:
        telemetry.record_event(
            f"reformat.{result.status}",
            level=_EVENT_LEVELS[result.status],
            buffer=result.buffer_handle,
            step=result.failed_step,
            data={
                "content_kind": result.content_kind,
                "profile": result.profile_name,
                "message": result.message,
            },
            logger_name=self._logger_name,
        )
        return result


__all__ = ["Orchestrator", "Differ"]
