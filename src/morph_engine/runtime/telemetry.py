"""Pipeline telemetry on top of telelog.

Every record a reformat cycle emits is keyed by the buffer it works on and,
while an external program runs, by the step name. ``span`` and
``record_event`` take both as keywords so call sites never spell the keys
out by hand:

    with telemetry.span("pipeline::step", buffer=3, step="black"):
        ...
    telemetry.record_event("reformat.ok", buffer=3, data={"hunks": 2})

Switches are read from ``MORPH_ENGINE_*`` environment variables:
``LOG_LEVEL``, ``LOG_FILE``, ``LOG_JSON``, ``DISABLE_CONSOLE`` and
``NO_COLOR``. ``configure(preset=...)`` accepts ``"development"`` and
``"production"``.
"""

from __future__ import annotations

import os
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, MutableMapping, Optional, Tuple, cast

import telelog  # type: ignore[import]

tl = cast(Any, telelog)

ENV_PREFIX = "MORPH_ENGINE_"
DEFAULT_LOGGER_NAME = "morph_engine"
PRESETS = ("development", "production")

_LOGGER_CACHE: MutableMapping[str, Any] = {}
_ACTIVE_CONFIG: Optional[Any] = None


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_flag(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return repr(value) if isinstance(value, (dict, list, tuple, set)) else str(value)


def pipeline_fields(
    *,
    buffer: Optional[int] = None,
    step: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
    """Flatten the pipeline keys plus ``extra`` into string pairs.

    ``buffer`` and ``step`` come first and are omitted when ``None``.
    """

    fields: Dict[str, str] = {}
    if buffer is not None:
        fields["buffer"] = str(buffer)
    if step is not None:
        fields["step"] = step
    for key, value in (extra or {}).items():
        fields[str(key)] = _stringify(value)
    return fields


def _build_preset_config(preset: str) -> Any:
    key = preset.lower()
    if key not in PRESETS:
        raise ValueError(f"Unknown preset '{preset}', expected one of {PRESETS}.")

    config = tl.Config()
    if key == "development":
        config.with_min_level("DEBUG")
        config.with_console_output(True)
        config.with_colored_output(True)
    elif key == "production":
        # no-op cycles (throttled, unchanged) log below WARNING and stay out
        config.with_min_level("WARNING")
        config.with_console_output(False)
        config.with_json_format(True)
        config.with_file_output(_env("LOG_FILE") or "morph_engine.log")

    config.with_profiling(True)
    return config


def _build_default_config() -> Any:
    config = tl.Config()
    config.with_min_level((_env("LOG_LEVEL") or "INFO").upper())

    if _env_flag("DISABLE_CONSOLE", False):
        config.with_console_output(False)
    else:
        config.with_console_output(True)
        config.with_colored_output(not _env_flag("NO_COLOR", False))

    if _env_flag("LOG_JSON", False):
        config.with_json_format(True)

    log_file = _env("LOG_FILE")
    if log_file:
        config.with_file_output(log_file)

    config.with_profiling(True)
    return config


def configure(*, config: Optional[Any] = None, preset: Optional[str] = None) -> None:
    """Install a telelog configuration for every pipeline logger.

    Pass either an explicit ``tl.Config`` or one of ``PRESETS``; with neither,
    the environment decides. Cached loggers are dropped so the next
    ``get_logger`` call picks up the change.
    """

    global _ACTIVE_CONFIG
    if config and preset:
        raise ValueError("Provide either `config` or `preset`, not both.")

    if preset:
        config = _build_preset_config(preset)
    elif config is None:
        config = _build_default_config()

    _ACTIVE_CONFIG = config
    _LOGGER_CACHE.clear()


def _ensure_config() -> Any:
    global _ACTIVE_CONFIG
    if _ACTIVE_CONFIG is None:
        _ACTIVE_CONFIG = _build_default_config()
    return _ACTIVE_CONFIG


def get_logger(name: Optional[str] = None) -> Any:
    logger_name = name or _env("LOGGER") or DEFAULT_LOGGER_NAME
    if logger_name not in _LOGGER_CACHE:
        _LOGGER_CACHE[logger_name] = tl.Logger.with_config(
            logger_name, _ensure_config()
        )
    return _LOGGER_CACHE[logger_name]


def _level_method(logger: Any, level: str) -> Tuple[Any, bool]:
    name = str(level).lower()
    with_attr = getattr(logger, f"{name}_with", None)
    if with_attr is not None:
        return with_attr, True
    attr = getattr(logger, name, None)
    if attr is None:
        raise ValueError(f"Unsupported log level '{level}'.")
    return attr, False


def _emit(logger: Any, level: str, message: str, fields: Dict[str, str]) -> None:
    method, accepts_data = _level_method(logger, level)
    if accepts_data:
        method(message, list(fields.items()))
    else:
        method(f"{message} {fields}")


def record_event(
    name: str,
    *,
    level: str = "info",
    buffer: Optional[int] = None,
    step: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    """Emit ``event::<name>`` carrying the buffer, step and ``data`` pairs."""

    fields = {"event": name, **pipeline_fields(buffer=buffer, step=step, extra=data)}
    _emit(get_logger(logger_name), level, f"event::{name}", fields)


@dataclass
class SpanHandle:
    """Yielded by ``span``; collects metadata reported if the block fails."""

    logger: Any
    span_name: str
    component_name: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = _stringify(value)

    def fail(self, reason: str) -> None:
        fields = {"span": self.span_name, **self.metadata, "reason": reason}
        if self.component_name:
            fields["component"] = self.component_name
        _emit(self.logger, "error", "span::fail", fields)


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    component: Optional[str] = None,
    buffer: Optional[int] = None,
    step: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Iterator[SpanHandle]:
    """Profile a block, with the buffer and step pushed as logger context.

    ``component`` additionally tracks the block under that component id. An
    exception escaping the block is logged through ``SpanHandle.fail`` and
    re-raised.
    """

    log = get_logger(logger_name)
    fields = pipeline_fields(buffer=buffer, step=step, extra=metadata)

    with ExitStack() as stack:
        for key, value in fields.items():
            log.add_context(key, value)
            stack.callback(log.remove_context, key)
        if component:
            stack.enter_context(log.track_component(component))
        stack.enter_context(log.profile(name))
        handle = SpanHandle(
            logger=log, span_name=name, component_name=component, metadata=dict(fields)
        )
        try:
            yield handle
        except Exception as exc:
            handle.fail(str(exc))
            raise


__all__ = [
    "PRESETS",
    "SpanHandle",
    "configure",
    "get_logger",
    "pipeline_fields",
    "record_event",
    "span",
]
