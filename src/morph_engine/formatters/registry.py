"""Registries mapping step names to steps and (kind, profile) pairs to step lists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Sequence

from morph_engine.runtime.telemetry import span

from .models import FormatterStep, Profile


class ConfigurationError(RuntimeError):
    """Invalid registry contents; raised while registering, never while formatting."""


class StepConflictError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Formatter step '{name}' already registered")
        self.name = name


class UnknownStepError(ConfigurationError, KeyError):
    def __init__(self, name: str, *, profile: Optional[str] = None) -> None:
        where = f" (referenced by profile '{profile}')" if profile else ""
        super().__init__(f"Formatter step '{name}' is not registered{where}")
        self.name = name
        self.profile = profile

    def __str__(self) -> str:
        return str(self.args[0])


class ProfileConflictError(ConfigurationError):
    def __init__(self, content_kind: str, profile_name: str) -> None:
        super().__init__(
            f"Duplicate definitions for profile '{profile_name}' of '{content_kind}'"
        )
        self.content_kind = content_kind
        self.profile_name = profile_name


@dataclass(slots=True)
class RegistryStats:
    """Lightweight snapshot describing registry state."""

    step_count: int
    profile_count: int
    content_kinds: tuple[str, ...]


class StepRegistry:
    """Owns the formatter steps available to profiles, keyed by name."""

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._steps: Dict[str, FormatterStep] = {}
        self._logger_name = logger_name

    def register(self, step: FormatterStep, *, replace: bool = False) -> FormatterStep:
        with span(
            "formatters::register_step",
            logger_name=self._logger_name,
            component="formatters",
            step=getattr(step, "name", "?"),
        ):
            if not isinstance(step, FormatterStep):
                raise TypeError(f"{step!r} does not implement FormatterStep")
            if not replace and step.name in self._steps:
                raise StepConflictError(step.name)
            self._steps[step.name] = step
            return step

    def get(self, name: str) -> FormatterStep:
        try:
            return self._steps[name]
        except KeyError:
            raise UnknownStepError(name) from None

    def names(self) -> tuple[str, ...]:
        return tuple(self._steps)

    def __contains__(self, name: object) -> bool:
        return name in self._steps

    def __len__(self) -> int:
        return len(self._steps)


class ProfileRegistry:
    """Ordered step lists per ``(content_kind, profile_name)``."""

    def __init__(self, steps: StepRegistry, *, logger_name: str | None = None) -> None:
        self.steps = steps
        self._profiles: Dict[str, Dict[str, Profile]] = {}
        self._logger_name = logger_name
        self._revision = 0

    def revision(self) -> int:
        return self._revision

    def register(
        self, content_kind: str, profile_name: str, step_names: Sequence[str]
    ) -> Profile:
        """Register a profile; every step name must already be registered."""

        with span(
            "formatters::register_profile",
            logger_name=self._logger_name,
            component="formatters",
            metadata={"content_kind": content_kind, "profile": profile_name},
        ) as handle:
            by_name = self._profiles.get(content_kind, {})
            if profile_name in by_name:
                handle.add_metadata("conflict", profile_name)
                raise ProfileConflictError(content_kind, profile_name)

            resolved = []
            for step_name in step_names:
                try:
                    resolved.append(self.steps.get(step_name))
                except UnknownStepError:
                    handle.add_metadata("missing_step", step_name)
                    raise UnknownStepError(
                        step_name, profile=f"{content_kind}/{profile_name}"
                    ) from None

            profile = Profile(content_kind, profile_name, resolved)
            self._profiles.setdefault(content_kind, {})[profile_name] = profile
            self._revision += 1
            return profile

    def lookup(self, content_kind: str, profile_name: str) -> tuple[FormatterStep, ...]:
        """Steps for the pair, or ``()`` when nothing is registered."""

        profile = self._profiles.get(content_kind, {}).get(profile_name)
        if profile is None:
            return ()
        return tuple(profile.steps)

    def get_profile(self, content_kind: str, profile_name: str) -> Optional[Profile]:
        return self._profiles.get(content_kind, {}).get(profile_name)

    def available_profiles(self, content_kind: str) -> list[str]:
        return list(self._profiles.get(content_kind, {}))

    def iter_profiles(self, content_kind: Optional[str] = None) -> Iterator[Profile]:
        if content_kind is not None:
            yield from self._profiles.get(content_kind, {}).values()
            return
        for by_name in self._profiles.values():
            yield from by_name.values()

    def stats(self) -> RegistryStats:
        return RegistryStats(
            step_count=len(self.steps),
            profile_count=sum(len(by_name) for by_name in self._profiles.values()),
            content_kinds=tuple(sorted(self._profiles)),
        )

    def register_many(
        self, definitions: Iterable[tuple[str, str, Sequence[str]]]
    ) -> list[Profile]:
        return [self.register(kind, name, steps) for kind, name, steps in definitions]


__all__ = [
    "ConfigurationError",
    "ProfileConflictError",
    "ProfileRegistry",
    "RegistryStats",
    "StepConflictError",
    "StepRegistry",
    "UnknownStepError",
]
