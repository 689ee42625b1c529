from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest

from morph_engine.formatters import (
    DEFAULT_PROFILES,
    CommandStep,
    ConfigLocator,
    ProfileConflictError,
    ProfileRegistry,
    ProcessResult,
    StepConflictError,
    StepOutcome,
    StepRegistry,
    UnknownStepError,
    build_default_steps,
    git_root,
    load_default_profiles,
    load_default_steps,
)
from morph_engine.formatters.process import LAUNCH_FAILED, run
from morph_engine.runtime import Settings

UPPERCASE_SCRIPT = (
    "import pathlib, sys; p = pathlib.Path(sys.argv[1]); "
    "p.write_text(p.read_text().upper())"
)


class RecordingRunner:
    def __init__(self, exit_code: int = 0) -> None:
        self.exit_code = exit_code
        self.calls: List[tuple[str, tuple[str, ...]]] = []

    def __call__(self, executable, args, *, timeout=None) -> ProcessResult:
        self.calls.append((executable, tuple(args)))
        return ProcessResult(executable, tuple(args), self.exit_code, stderr="bad input")


def make_registries() -> tuple[StepRegistry, ProfileRegistry]:
    steps = StepRegistry()
    load_default_steps(steps, settings=Settings())
    profiles = ProfileRegistry(steps)
    return steps, profiles


def test_default_profiles_register() -> None:
    _, profiles = make_registries()

    load_default_profiles(profiles)

    assert profiles.stats().profile_count == len(DEFAULT_PROFILES)
    assert [step.name for step in profiles.lookup("python", "default")] == ["isort", "black"]


def test_lookup_unknown_profile_is_empty() -> None:
    _, profiles = make_registries()
    load_default_profiles(profiles)

    assert profiles.lookup("markdown", "default") == ()
    assert profiles.lookup("go", "nonexistent") == ()


def test_available_profiles_lists_every_name() -> None:
    _, profiles = make_registries()
    load_default_profiles(profiles)

    assert set(profiles.available_profiles("go")) == {"default", "jsontags"}
    assert profiles.available_profiles("markdown") == []


def test_duplicate_profile_raises_at_registration() -> None:
    _, profiles = make_registries()
    profiles.register("go", "default", ["go"])

    with pytest.raises(ProfileConflictError):
        profiles.register("go", "default", ["gomodifytags"])

    assert [step.name for step in profiles.lookup("go", "default")] == ["go"]


def test_profile_with_unknown_step_raises() -> None:
    _, profiles = make_registries()

    with pytest.raises(UnknownStepError) as info:
        profiles.register("rust", "default", ["rustfmt"])

    assert "rust/default" in str(info.value)
    assert profiles.available_profiles("rust") == []


def test_duplicate_step_name_raises() -> None:
    steps, _ = make_registries()

    with pytest.raises(StepConflictError):
        steps.register(CommandStep("black", "black"))


def test_load_default_profiles_kind_filter() -> None:
    _, profiles = make_registries()

    load_default_profiles(profiles, include_kinds=("lua", "zig"))

    assert profiles.stats().content_kinds == ("lua", "zig")


def test_command_step_builds_command_line() -> None:
    runner = RecordingRunner()
    step = CommandStep("go", "gofmt", ("-w", "{path}"), runner=runner)

    assert step.invoke("/tmp/x.go") is True
    assert runner.calls == [("gofmt", ("-w", "/tmp/x.go"))]


def test_placeholders_inside_substituted_path_are_kept() -> None:
    step = CommandStep(
        "stylua",
        "stylua",
        ("--config-path={config}", "{path}"),
        config=ConfigLocator(("stylua.toml",), ()),
    )

    args = step.build_args("/tmp/{config}/a.lua", "/etc/{path}.toml")

    assert args == ("--config-path=/etc/{path}.toml", "/tmp/{config}/a.lua")


def test_command_step_nonzero_exit_is_failure() -> None:
    step = CommandStep("black", "black", runner=RecordingRunner(exit_code=123))

    outcome = step.run("/tmp/x.py")

    assert outcome.ok is False
    assert outcome.reason == "exit code 123"
    assert "bad input" in outcome.output


def test_command_step_runs_real_process(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("hello\n")
    step = CommandStep("upper", sys.executable, ("-c", UPPERCASE_SCRIPT, "{path}"))

    assert step.invoke(str(target)) is True
    assert target.read_text() == "HELLO\n"


def test_launch_failure_is_step_failure(tmp_path: Path) -> None:
    step = CommandStep("ghost", str(tmp_path / "no-such-tool"))

    outcome = step.run(str(tmp_path / "file"))

    assert outcome.ok is False
    assert outcome.process is not None
    assert outcome.process.exit_code == LAUNCH_FAILED


def test_process_timeout_reported() -> None:
    result = run(sys.executable, ("-c", "import time; time.sleep(5)"), timeout=0.2)

    assert result.ok is False
    assert "timed out" in (result.error or "")


def test_locator_searches_roots_in_order(tmp_path: Path) -> None:
    first, second, third = (tmp_path / name for name in ("vcs", "cwd", "global"))
    for root in (first, second, third):
        root.mkdir()
    (second / ".stylua.toml").write_text("")
    (third / "stylua.toml").write_text("")
    locator = ConfigLocator(
        ("stylua.toml", ".stylua.toml"),
        (lambda: first, lambda: None, lambda: second, lambda: third),
    )

    assert locator.resolve() == second / ".stylua.toml"


def test_locator_memoizes_result(tmp_path: Path) -> None:
    locator = ConfigLocator(("stylua.toml",), (lambda: tmp_path,))

    assert locator.resolve() is None
    (tmp_path / "stylua.toml").write_text("")
    assert locator.resolve() is None
    assert locator.lookups == 1

    locator.reset()
    assert locator.resolve() == tmp_path / "stylua.toml"


def test_missing_config_fails_without_launching(tmp_path: Path) -> None:
    runner = RecordingRunner()
    step = CommandStep(
        "stylua",
        "stylua",
        ("--config-path", "{config}", "{path}"),
        config=ConfigLocator(("stylua.toml",), (lambda: tmp_path,)),
        runner=runner,
    )

    outcome = step.run("/tmp/init.lua")

    assert outcome == StepOutcome("stylua", False, reason="config not found")
    assert runner.calls == []


def test_found_config_is_passed_to_tool(tmp_path: Path) -> None:
    (tmp_path / "stylua.toml").write_text("")
    runner = RecordingRunner()
    step = CommandStep(
        "stylua",
        "stylua",
        ("--config-path", "{config}", "{path}"),
        config=ConfigLocator(("stylua.toml",), (lambda: tmp_path,)),
        runner=runner,
    )

    step.invoke("/tmp/a.lua")
    step.invoke("/tmp/b.lua")

    assert runner.calls[1] == (
        "stylua",
        ("--config-path", str(tmp_path / "stylua.toml"), "/tmp/b.lua"),
    )
    assert step.config is not None and step.config.lookups == 1


def test_config_placeholder_requires_locator() -> None:
    with pytest.raises(ValueError):
        CommandStep("stylua", "stylua", ("--config-path", "{config}"))


def test_default_steps_have_independent_locators(tmp_path: Path) -> None:
    settings = Settings(config_root=tmp_path)
    first = {step.name: step for step in build_default_steps(settings)}
    second = {step.name: step for step in build_default_steps(settings)}

    assert first["stylua"].config is not second["stylua"].config


def test_git_root_walks_up(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert git_root(nested) == tmp_path.resolve()
