"""External formatter invocations."""

from __future__ import annotations

import re
from typing import Callable, Optional, Sequence

from morph_engine.runtime import telemetry

from . import process
from .locator import ConfigLocator
from .models import StepOutcome

Runner = Callable[..., process.ProcessResult]

PATH_PLACEHOLDER = "{path}"
CONFIG_PLACEHOLDER = "{config}"
_PLACEHOLDER_RE = re.compile(r"\{(?:path|config)\}")


class CommandStep:
    """Runs ``executable`` with ``args`` against a file; exit status 0 means success.

    ``args`` may contain ``{path}`` and ``{config}``. When a ``config``
    locator is given and finds nothing, the step fails without launching.
    """

    def __init__(
        self,
        name: str,
        executable: str,
        args: Sequence[str] = (PATH_PLACEHOLDER,),
        *,
        config: Optional[ConfigLocator] = None,
        timeout: Optional[float] = None,
        runner: Optional[Runner] = None,
    ) -> None:
        if not name:
            raise ValueError("step name cannot be empty")
        if not executable:
            raise ValueError("step executable cannot be empty")
        if config is None and any(CONFIG_PLACEHOLDER in arg for arg in args):
            raise ValueError(f"step '{name}' uses {CONFIG_PLACEHOLDER} without a locator")
        self.name = name
        self.executable = executable
        self.args = tuple(args)
        self.config = config
        self.timeout = timeout
        self._runner = runner or process.run
        self.logger = telemetry.get_logger("morph_engine.formatters")

    def __repr__(self) -> str:
        return f"CommandStep({self.name!r}, {self.executable!r}, {self.args!r})"

    def build_args(self, path: str, config_path: Optional[str] = None) -> tuple[str, ...]:
        values = {PATH_PLACEHOLDER: path, CONFIG_PLACEHOLDER: config_path or ""}
        return tuple(
            _PLACEHOLDER_RE.sub(lambda match: values[match.group(0)], arg)
            for arg in self.args
        )

    def run(self, path: str) -> StepOutcome:
        config_path: Optional[str] = None
        if self.config is not None:
            found = self.config.resolve()
            if found is None:
                self.logger.warning(
                    f"{self.name}: no config among {', '.join(self.config.candidates)}"
                )
                return StepOutcome(self.name, False, reason="config not found")
            config_path = str(found)

        result = self._runner(
            self.executable, self.build_args(path, config_path), timeout=self.timeout
        )
        if result.ok:
            return StepOutcome(self.name, True, process=result)
        reason = result.error or f"exit code {result.exit_code}"
        return StepOutcome(self.name, False, reason=reason, process=result)

    def invoke(self, path: str) -> bool:
        return self.run(path).ok


__all__ = ["CommandStep", "PATH_PLACEHOLDER", "CONFIG_PLACEHOLDER"]
