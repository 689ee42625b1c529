"""Formatter steps, their registries and the built-in profile table."""

from .defaults import (
    DEFAULT_PROFILES,
    build_default_steps,
    load_default_profiles,
    load_default_steps,
)
from .locator import ConfigLocator, git_root, standard_locator
from .models import FormatterStep, Profile, StepOutcome
from .process import ProcessResult
from .registry import (
    ConfigurationError,
    ProfileConflictError,
    ProfileRegistry,
    RegistryStats,
    StepConflictError,
    StepRegistry,
    UnknownStepError,
)
from .steps import CommandStep

__all__ = [
    "CommandStep",
    "ConfigLocator",
    "ConfigurationError",
    "DEFAULT_PROFILES",
    "FormatterStep",
    "ProcessResult",
    "Profile",
    "ProfileConflictError",
    "ProfileRegistry",
    "RegistryStats",
    "StepConflictError",
    "StepOutcome",
    "StepRegistry",
    "UnknownStepError",
    "build_default_steps",
    "git_root",
    "load_default_profiles",
    "load_default_steps",
    "standard_locator",
]
