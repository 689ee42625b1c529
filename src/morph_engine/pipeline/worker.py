"""Off-loop execution of formatter steps."""

from __future__ import annotations

import asyncio
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from morph_engine.formatters.models import FormatterStep, StepOutcome


class StepWorker:
    """Queue of formatter steps served by a single background thread.

    One thread keeps steps strictly sequential even if several cycles submit
    work for different buffers.
    """

    def __init__(self, *, thread_name_prefix: str = "morph-step") -> None:
        self._thread_name_prefix = thread_name_prefix
        self._executor: Optional[ThreadPoolExecutor] = None

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=self._thread_name_prefix
            )
        return self._executor

    def submit(self, step: FormatterStep, path: str) -> "Future[StepOutcome]":
        return self._ensure_executor().submit(step.run, path)

    async def run(self, step: FormatterStep, path: str) -> StepOutcome:
        return await asyncio.wrap_future(self.submit(step, path))

    def shutdown(self, *, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def __enter__(self) -> "StepWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.shutdown()
        return False


__all__ = ["StepWorker"]
