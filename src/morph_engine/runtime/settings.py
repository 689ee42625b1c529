"""Environment-driven settings for the formatting pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .telemetry import ENV_PREFIX

DEFAULT_COOLDOWN_MS = 1024
DEFAULT_PROFILE = "default"


def _default_config_root(environ: Mapping[str, str]) -> Path:
    base = environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "morph_engine"


@dataclass(frozen=True, slots=True)
class Settings:
    """Knobs shared by the orchestrator, the regulator and the steps."""

    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    default_profile: str = DEFAULT_PROFILE
    tmp_dir: Optional[Path] = None
    step_timeout: Optional[float] = None
    config_root: Path = field(
        default_factory=lambda: _default_config_root(os.environ)
    )

    def __post_init__(self) -> None:
        if self.cooldown_ms < 0:
            raise ValueError("cooldown_ms cannot be negative")
        if not self.default_profile:
            raise ValueError("default_profile cannot be empty")
        if self.step_timeout is not None and self.step_timeout <= 0:
            raise ValueError("step_timeout must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def read(name: str) -> Optional[str]:
            value = env.get(f"{ENV_PREFIX}{name}")
            return value or None

        cooldown = read("COOLDOWN_MS")
        tmp_dir = read("TMPDIR")
        timeout = read("STEP_TIMEOUT")
        config_root = read("CONFIG_ROOT")
        return cls(
            cooldown_ms=int(cooldown) if cooldown else DEFAULT_COOLDOWN_MS,
            default_profile=read("PROFILE") or DEFAULT_PROFILE,
            tmp_dir=Path(tmp_dir) if tmp_dir else None,
            step_timeout=float(timeout) if timeout else None,
            config_root=(
                Path(config_root) if config_root else _default_config_root(env)
            ),
        )


__all__ = ["Settings", "DEFAULT_COOLDOWN_MS", "DEFAULT_PROFILE"]
