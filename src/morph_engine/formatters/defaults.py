"""Built-in formatter steps and the profiles that chain them."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from morph_engine.runtime.settings import Settings

from .locator import standard_locator
from .registry import ProfileRegistry, StepRegistry
from .steps import CONFIG_PLACEHOLDER, PATH_PLACEHOLDER, CommandStep

STYLUA_CONFIG_NAMES = ("stylua.toml", ".stylua.toml")

# (name, executable, args); every tool rewrites the file in place
DEFAULT_COMMANDS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("zig", "zig", ("fmt", "--ast-check", PATH_PLACEHOLDER)),
    ("isort", "isort", ("--quiet", "--profile", "black", PATH_PLACEHOLDER)),
    (
        "black",
        "black",
        ("--quiet", "--target-version", "py310", "--line-length", "256", PATH_PLACEHOLDER),
    ),
    ("go", "gofmt", ("-w", PATH_PLACEHOLDER)),
    ("clang-format", "clang-format", ("-i", PATH_PLACEHOLDER)),
    (
        "gomodifytags",
        "gomodifytags",
        ("-all", "-add-tags", "json", "-w", "-file", PATH_PLACEHOLDER),
    ),
    ("fish-indent", "fish_indent", ("-w", PATH_PLACEHOLDER)),
)

DEFAULT_PROFILES: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("lua", "default", ("stylua",)),
    ("zig", "default", ("zig",)),
    ("python", "default", ("isort", "black")),
    ("go", "default", ("go",)),
    ("go", "jsontags", ("gomodifytags",)),
    ("c", "default", ("clang-format",)),
    ("fish", "default", ("fish-indent",)),
)


def build_default_steps(settings: Optional[Settings] = None) -> list[CommandStep]:
    """Fresh step instances; each owns its own config memo."""

    settings = settings or Settings()
    steps = [
        CommandStep(name, executable, args, timeout=settings.step_timeout)
        for name, executable, args in DEFAULT_COMMANDS
    ]
    steps.append(
        CommandStep(
            "stylua",
            "stylua",
            ("--config-path", CONFIG_PLACEHOLDER, PATH_PLACEHOLDER),
            config=standard_locator(STYLUA_CONFIG_NAMES, settings.config_root),
            timeout=settings.step_timeout,
        )
    )
    return steps


def load_default_steps(
    registry: StepRegistry,
    *,
    settings: Optional[Settings] = None,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
) -> None:
    allowed = _build_filters(include, exclude)
    for step in build_default_steps(settings):
        if _selected(step.name, allowed):
            registry.register(step)


def load_default_profiles(
    registry: ProfileRegistry,
    *,
    include_kinds: Sequence[str] | None = None,
    exclude_kinds: Sequence[str] | None = None,
    extra_profiles: Iterable[tuple[str, str, Sequence[str]]] | None = None,
) -> None:
    """Register the built-in profiles, optionally filtered by content kind.

    Steps must be registered first; a profile naming a missing step raises
    ``UnknownStepError``.
    """

    allowed = _build_filters(include_kinds, exclude_kinds)
    for content_kind, profile_name, step_names in DEFAULT_PROFILES:
        if not _selected(content_kind, allowed):
            continue
        registry.register(content_kind, profile_name, step_names)

    if extra_profiles:
        registry.register_many(extra_profiles)


def _build_filters(
    include: Sequence[str] | None, exclude: Sequence[str] | None
) -> tuple[set[str] | None, set[str]]:
    include_set = set(include) if include else None
    exclude_set = set(exclude or ())
    return include_set, exclude_set


def _selected(item_id: str, filters: tuple[set[str] | None, set[str]]) -> bool:
    include, exclude = filters
    if include is not None and item_id not in include:
        return False
    return item_id not in exclude


__all__ = [
    "DEFAULT_COMMANDS",
    "DEFAULT_PROFILES",
    "STYLUA_CONFIG_NAMES",
    "build_default_steps",
    "load_default_profiles",
    "load_default_steps",
]
