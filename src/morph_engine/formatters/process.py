"""Synchronous child-process execution with captured output."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from morph_engine.runtime import telemetry

LAUNCH_FAILED = -1
TIMED_OUT = -2


@dataclass(frozen=True, slots=True)
class ProcessResult:
    executable: str
    args: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        return " ".join((self.executable, *self.args))

    def tail(self, lines: int = 20) -> str:
        """Last ``lines`` lines of combined output, for diagnostics."""

        combined = "\n".join(
            part for part in (self.stdout.rstrip(), self.stderr.rstrip(), self.error or "") if part
        )
        return "\n".join(combined.splitlines()[-lines:])


def run(
    executable: str, args: Sequence[str], *, timeout: Optional[float] = None
) -> ProcessResult:
    """Run ``executable`` to completion; never raises for launch or exit failures."""

    argv = tuple(args)
    with telemetry.span(
        "process::run",
        component="process",
        metadata={"executable": executable},
    ) as handle:
        try:
            completed = subprocess.run(
                [executable, *argv],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            handle.add_metadata("timeout", timeout)
            return ProcessResult(
                executable,
                argv,
                TIMED_OUT,
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr),
                error=f"timed out after {timeout}s",
            )
        except OSError as exc:
            handle.add_metadata("launch_error", exc)
            return ProcessResult(executable, argv, LAUNCH_FAILED, error=str(exc))

        handle.add_metadata("exit_code", completed.returncode)
        return ProcessResult(
            executable,
            argv,
            completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


__all__ = ["ProcessResult", "run", "LAUNCH_FAILED", "TIMED_OUT"]
