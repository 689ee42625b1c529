from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from morph_engine.buffer import Buffer
from morph_engine.formatters import ProfileRegistry, StepOutcome, StepRegistry
from morph_engine.pipeline import Orchestrator, StepWorker
from morph_engine.runtime import Regulator, Settings


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeStep:
    """Rewrites the snapshot with ``transform``, or fails without touching it."""

    def __init__(
        self,
        name: str,
        transform: Optional[Callable[[str], str]] = None,
        *,
        ok: bool = True,
        on_run: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.name = name
        self.transform = transform
        self.ok = ok
        self.on_run = on_run
        self.calls: List[str] = []

    def run(self, path: str) -> StepOutcome:
        self.calls.append(path)
        if self.on_run is not None:
            self.on_run(path)
        if not self.ok:
            return StepOutcome(self.name, False, reason="exit code 1")
        if self.transform is not None:
            file_path = Path(path)
            file_path.write_text(self.transform(file_path.read_text()))
        return StepOutcome(self.name, True)

    def invoke(self, path: str) -> bool:
        return self.run(path).ok


def make_orchestrator(
    *steps: FakeStep,
    tmp_dir: Optional[Path] = None,
    clock: Optional[FakeClock] = None,
    kind: str = "text",
) -> Orchestrator:
    registry = StepRegistry()
    for step in steps:
        registry.register(step)
    profiles = ProfileRegistry(registry)
    profiles.register(kind, "default", [step.name for step in steps])
    settings = Settings(tmp_dir=tmp_dir)
    return Orchestrator(
        profiles,
        settings=settings,
        regulator=Regulator(settings.cooldown_ms, clock=clock or FakeClock()),
    )


def make_buffer(text: str = "b\na\nc\n", *, path: Optional[Path] = None) -> Buffer:
    buffer = Buffer.from_text(text, filetype="text")
    buffer.path = path
    return buffer


def sort_lines(text: str) -> str:
    return "".join(sorted(text.splitlines(keepends=True)))


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    path = tmp_path / "snapshots"
    path.mkdir()
    return path


def test_successful_pipeline_reconciles_and_saves(tmp_path: Path, tmp_dir: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("b\na\nc\n")
    buffer = make_buffer(path=path)
    orchestrator = make_orchestrator(
        FakeStep("sort", sort_lines), FakeStep("upper", str.upper), tmp_dir=tmp_dir
    )

    result = orchestrator.run(buffer)

    assert result.status == "ok"
    assert result.hunks > 0
    assert list(buffer.lines()) == ["A", "B", "C"]
    assert path.read_text() == "A\nB\nC\n"
    assert list(tmp_dir.iterdir()) == []


def test_steps_run_in_order_on_same_snapshot(tmp_dir: Path) -> None:
    first = FakeStep("first", lambda text: text + "first\n")
    second = FakeStep("second", lambda text: text + "second\n")
    buffer = make_buffer("x\n")

    make_orchestrator(first, second, tmp_dir=tmp_dir).run(buffer)

    assert first.calls == second.calls
    assert list(buffer.lines()) == ["x", "first", "second"]


@pytest.mark.parametrize("failing", [0, 1, 2])
def test_failing_step_leaves_buffer_untouched(tmp_dir: Path, failing: int) -> None:
    steps = [FakeStep(f"step{i}", str.upper) for i in range(3)]
    steps[failing] = FakeStep(f"step{failing}", ok=False)
    buffer = make_buffer()
    window = buffer.attach_window(cursor=(2, 0))
    orchestrator = make_orchestrator(*steps, tmp_dir=tmp_dir)

    result = orchestrator.run(buffer)

    assert result.status == "step_failed"
    assert result.failed_step == f"step{failing}"
    assert result.outcome is not None and result.outcome.reason == "exit code 1"
    assert list(buffer.lines()) == ["b", "a", "c"]
    assert buffer.changedtick == 0
    assert window.cursor == (2, 0)
    for later in steps[failing + 1 :]:
        assert later.calls == []
    assert list(tmp_dir.iterdir()) == []
    assert orchestrator.regulator.throttled(buffer.handle) is False


def test_throttled_until_cooldown_passes(tmp_dir: Path) -> None:
    clock = FakeClock()
    step = FakeStep("upper", str.upper)
    orchestrator = make_orchestrator(step, tmp_dir=tmp_dir, clock=clock)
    buffer = make_buffer()

    assert orchestrator.run(buffer).status == "ok"
    assert orchestrator.run(buffer).status == "throttled"
    assert len(step.calls) == 1

    clock.now += 2.0
    assert orchestrator.run(buffer).status == "unchanged"
    assert len(step.calls) == 2


def test_missing_profile_is_noop(tmp_dir: Path) -> None:
    step = FakeStep("upper", str.upper)
    orchestrator = make_orchestrator(step, tmp_dir=tmp_dir)
    buffer = make_buffer()

    result = orchestrator.run(buffer, profile_name="strict")

    assert result.status == "no_steps"
    assert result.noop is True
    assert step.calls == []
    assert list(tmp_dir.iterdir()) == []


def test_defaults_come_from_buffer_filetype(tmp_dir: Path) -> None:
    orchestrator = make_orchestrator(FakeStep("upper", str.upper), tmp_dir=tmp_dir)
    buffer = make_buffer()
    buffer.filetype = "markdown"

    assert orchestrator.run(buffer).status == "no_steps"
    result = orchestrator.run(buffer, content_kind="text")
    assert result.status == "ok"
    assert result.content_kind == "text"
    assert result.profile_name == "default"


def test_unchanged_output_skips_reconciliation(tmp_dir: Path) -> None:
    buffer = make_buffer("already\nfine\n")
    orchestrator = make_orchestrator(FakeStep("noop"), tmp_dir=tmp_dir)

    result = orchestrator.run(buffer)

    assert result.status == "unchanged"
    assert buffer.changedtick == 0
    assert len(buffer.undo_history) == 0


def test_reconciliation_preserves_views_and_groups_undo(tmp_dir: Path) -> None:
    buffer = make_buffer("c\nb\na\nd\n")
    first = buffer.attach_window(cursor=(3, 0), topline=1)
    second = buffer.attach_window(cursor=(1, 0))
    orchestrator = make_orchestrator(FakeStep("sort", sort_lines), tmp_dir=tmp_dir)

    orchestrator.run(buffer)

    assert list(buffer.lines()) == ["a", "b", "c", "d"]
    assert (first.cursor, first.topline) == ((3, 0), 1)
    assert second.cursor == (1, 0)
    assert len(buffer.undo_history) == 1
    buffer.undo()
    assert list(buffer.lines()) == ["c", "b", "a", "d"]


def test_snapshot_failure_aborts_before_steps(tmp_path: Path) -> None:
    step = FakeStep("upper", str.upper)
    orchestrator = make_orchestrator(step, tmp_dir=tmp_path / "missing")
    buffer = make_buffer()

    result = orchestrator.run(buffer)

    assert result.status == "snapshot_failed"
    assert step.calls == []
    assert orchestrator.regulator.throttled(buffer.handle) is False


def test_persist_failure_reported(tmp_path: Path, tmp_dir: Path) -> None:
    buffer = make_buffer(path=tmp_path / "gone" / "notes.txt")
    orchestrator = make_orchestrator(FakeStep("upper", str.upper), tmp_dir=tmp_dir)

    result = orchestrator.run(buffer)

    assert result.status == "persist_failed"
    assert result.failed is True
    assert list(buffer.lines()) == ["B", "A", "C"]
    assert orchestrator.regulator.throttled(buffer.handle) is False
    assert list(tmp_dir.iterdir()) == []


def test_snapshot_keeps_file_suffix(tmp_path: Path, tmp_dir: Path) -> None:
    step = FakeStep("noop")
    orchestrator = make_orchestrator(step, tmp_dir=tmp_dir)
    path = tmp_path / "main.go"
    path.write_text("b\na\nc\n")

    orchestrator.run(make_buffer(path=path))

    assert step.calls[0].endswith(".go")


def test_reentrant_run_reports_busy(tmp_dir: Path) -> None:
    nested: List[str] = []
    buffer = make_buffer()

    def reenter(_path: str) -> None:
        nested.append(orchestrator.run(buffer).status)

    orchestrator = make_orchestrator(FakeStep("reenter", on_run=reenter), tmp_dir=tmp_dir)

    assert orchestrator.run(buffer).status == "unchanged"
    assert nested == ["busy"]


def test_step_exception_propagates_and_cleans_up(tmp_dir: Path) -> None:
    def explode(_path: str) -> None:
        raise RuntimeError("tool crashed")

    buffer = make_buffer()
    orchestrator = make_orchestrator(FakeStep("boom", on_run=explode), tmp_dir=tmp_dir)

    with pytest.raises(RuntimeError):
        orchestrator.run(buffer)

    assert list(buffer.lines()) == ["b", "a", "c"]
    assert list(tmp_dir.iterdir()) == []
    assert orchestrator.regulator.throttled(buffer.handle) is False


def test_run_async_offloads_steps(tmp_dir: Path) -> None:
    import threading

    threads: List[str] = []
    step = FakeStep(
        "sort", sort_lines, on_run=lambda _path: threads.append(threading.current_thread().name)
    )
    orchestrator = make_orchestrator(step, tmp_dir=tmp_dir)
    buffer = make_buffer()

    try:
        result = asyncio.run(orchestrator.run_async(buffer))
    finally:
        orchestrator.close()

    assert result.status == "ok"
    assert list(buffer.lines()) == ["a", "b", "c"]
    assert threads and threads[0].startswith("morph-step")
    assert list(tmp_dir.iterdir()) == []


def test_run_async_failure_leaves_buffer(tmp_dir: Path) -> None:
    orchestrator = make_orchestrator(
        FakeStep("upper", str.upper), FakeStep("broken", ok=False), tmp_dir=tmp_dir
    )
    buffer = make_buffer()

    with StepWorker() as worker:
        orchestrator.worker = worker
        result = asyncio.run(orchestrator.run_async(buffer))

    assert result.failed_step == "broken"
    assert list(buffer.lines()) == ["b", "a", "c"]


def test_injected_collaborators_are_kept(tmp_dir: Path) -> None:
    clock = FakeClock()
    regulator = Regulator(500, clock=clock)
    worker = StepWorker()
    orchestrator = Orchestrator(
        ProfileRegistry(StepRegistry()),
        settings=Settings(tmp_dir=tmp_dir),
        regulator=regulator,
        worker=worker,
    )

    assert len(regulator) == 0
    assert orchestrator.regulator is regulator
    assert orchestrator.worker is worker
    orchestrator.close()


def test_edit_during_step_marks_result_stale(tmp_path: Path, tmp_dir: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("b\na\nc\n")
    buffer = make_buffer(path=path)

    def type_in_buffer(_path: str) -> None:
        buffer.set_lines(3, 3, ["typed by user"])

    orchestrator = make_orchestrator(
        FakeStep("sort", sort_lines, on_run=type_in_buffer), tmp_dir=tmp_dir
    )

    result = orchestrator.run(buffer)

    assert result.status == "stale"
    assert result.noop is True
    assert list(buffer.lines()) == ["b", "a", "c", "typed by user"]
    assert path.read_text() == "b\na\nc\n"
    assert orchestrator.regulator.throttled(buffer.handle) is False
    assert list(tmp_dir.iterdir()) == []


def test_edit_while_awaiting_step_is_not_reverted(tmp_dir: Path) -> None:
    import threading

    started = threading.Event()
    release = threading.Event()

    def block(_path: str) -> None:
        started.set()
        release.wait(5)

    orchestrator = make_orchestrator(FakeStep("sort", sort_lines, on_run=block), tmp_dir=tmp_dir)
    buffer = make_buffer()

    async def edit_during_step():
        task = asyncio.ensure_future(orchestrator.run_async(buffer))
        await asyncio.get_running_loop().run_in_executor(None, started.wait, 5)
        buffer.set_lines(3, 3, ["typed by user"])
        release.set()
        return await task

    try:
        result = asyncio.run(edit_during_step())
    finally:
        release.set()
        orchestrator.close()

    assert result.status == "stale"
    assert list(buffer.lines()) == ["b", "a", "c", "typed by user"]
    assert len(buffer.undo_history) == 1


def test_unchanged_buffer_is_not_saved(tmp_path: Path, tmp_dir: Path) -> None:
    buffer = make_buffer("already\nfine\n", path=tmp_path / "gone" / "notes.txt")
    orchestrator = make_orchestrator(FakeStep("noop"), tmp_dir=tmp_dir)

    result = orchestrator.run(buffer)

    assert result.status == "unchanged"
    assert not (tmp_path / "gone").exists()


def test_unsaved_edits_are_saved_even_when_already_formatted(
    tmp_path: Path, tmp_dir: Path
) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("old\n")
    buffer = make_buffer("old\n", path=path)
    buffer.set_lines(0, 1, ["new"])
    orchestrator = make_orchestrator(FakeStep("noop"), tmp_dir=tmp_dir)

    assert orchestrator.run(buffer).status == "unchanged"
    assert path.read_text() == "new\n"
    assert buffer.modified is False


def test_crlf_file_keeps_line_endings_after_reformat(tmp_path: Path, tmp_dir: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"b\r\na\r\nc\r\n")
    buffer = Buffer.from_file(path, filetype="text")
    orchestrator = make_orchestrator(FakeStep("sort", sort_lines), tmp_dir=tmp_dir)

    assert orchestrator.run(buffer).status == "ok"
    assert path.read_bytes() == b"a\r\nb\r\nc\r\n"
