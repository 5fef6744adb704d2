from __future__ import annotations

import os
import threading
import time
from pathlib import Path

from auto_log.capture import ChangeCaptureService
from auto_log.config import Settings
from auto_log.errors import AuthError, DiffCaptureError
from auto_log.guard import BranchSafetyGuard
from auto_log.log_appender import RemoteLogAppender
from auto_log.messages import CommitMessageProvider
from auto_log.models import ChangeSet, CycleOutcome, CycleResult
from auto_log.orchestrator import CommitOrchestrator, CycleScheduler, OrchestratorState, build_orchestrator


class NoRepoGit:
    def is_repository(self) -> bool:
        return False

    def diff(self, staged: bool) -> str:
        raise AssertionError("diff must not be called outside a repository")


class StubGenerator:
    def __init__(self, reply: str = "Summarize change") -> None:
        self.reply = reply
        self.calls = 0

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        return self.reply


class Harness:
    def __init__(self, github_client, active: Path | None, auto_mode: bool = True, confirm: bool = True) -> None:
        self.active = active
        self.confirm_calls: list[str] = []
        self.generator = StubGenerator()
        self.state = OrchestratorState(auto_commit_mode=auto_mode, interval_minutes=60)
        self.capture = ChangeCaptureService(NoRepoGit(), self.state.snapshots, lambda: self.active)
        self.orchestrator = CommitOrchestrator(
            state=self.state,
            identity=lambda: self.identity,
            guard=BranchSafetyGuard(github_client, confirm=self._confirm(confirm)),
            capture=self.capture,
            messages=CommitMessageProvider(self.generator, prompt=lambda _label: ""),
            appender=RemoteLogAppender(github_client),
            active_file=lambda: self.active,
        )

    def _confirm(self, answer: bool):
        def confirm(branch: str) -> bool:
            self.confirm_calls.append(branch)
            return answer

        return confirm


def _fresh_file(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    now = time.time()
    os.utime(path, (now, now))
    return path


def test_run_cycle_given_untracked_new_file_when_run_then_content_is_logged(
    tmp_path,
    github_client,
    fake_github,
    identity,
) -> None:
    # Given
    active = _fresh_file(tmp_path / "notes.txt", "hello")
    harness = Harness(github_client, active)
    harness.identity = identity

    # When
    result = harness.orchestrator.run_cycle()

    # Then
    assert result.outcome == CycleOutcome.COMMITTED
    assert result.change_set is not None
    assert result.change_set.text == "hello"
    assert result.message == "Summarize change"
    assert fake_github.text("commit_log.txt").endswith("]\n\nSummarize change")
    assert harness.state.snapshots.get(active) == "hello"


def test_run_cycle_given_second_cycle_without_edits_when_run_then_halts_before_message(
    tmp_path,
    github_client,
    fake_github,
    identity,
) -> None:
    # Given
    active = _fresh_file(tmp_path / "notes.txt", "hello")
    harness = Harness(github_client, active)
    harness.identity = identity
    harness.orchestrator.run_cycle()
    puts_after_first = len(fake_github.put_bodies)

    # When
    result = harness.orchestrator.run_cycle()

    # Then
    assert result.outcome == CycleOutcome.NO_CHANGES
    assert harness.generator.calls == 1
    assert len(fake_github.put_bodies) == puts_after_first


def test_run_cycle_given_develop_branch_declined_when_run_then_halts_before_capture(
    tmp_path,
    github_client,
    fake_github,
    identity,
) -> None:
    # Given
    fake_github.default_branch = "develop"
    active = _fresh_file(tmp_path / "notes.txt", "hello")
    harness = Harness(github_client, active, confirm=False)
    harness.identity = identity

    # When
    result = harness.orchestrator.run_cycle()

    # Then
    assert result.outcome == CycleOutcome.GUARD_REJECTED
    assert harness.confirm_calls == ["develop"]
    assert active not in harness.state.snapshots
    assert fake_github.put_bodies == []


def test_run_cycle_given_manual_mode_and_empty_entry_when_run_then_no_message_outcome(
    tmp_path,
    github_client,
    fake_github,
    identity,
) -> None:
    # Given
    active = _fresh_file(tmp_path / "notes.txt", "hello")
    harness = Harness(github_client, active, auto_mode=False)
    harness.identity = identity

    # When
    result = harness.orchestrator.run_cycle()

    # Then
    assert result.outcome == CycleOutcome.NO_MESSAGE
    assert fake_github.put_bodies == []


def test_run_cycle_given_no_active_file_when_run_then_failure_is_reported_with_kind(
    github_client,
    fake_github,
    identity,
) -> None:
    # Given
    harness = Harness(github_client, None)
    harness.identity = identity

    # When
    result = harness.orchestrator.run_cycle()

    # Then
    assert result.outcome == CycleOutcome.FAILED
    assert result.error_kind == DiffCaptureError.kind
    assert result.detail == "No active file to inspect."


def test_run_cycle_given_missing_credentials_when_run_then_auth_failure_is_reported(github_client) -> None:
    # Given
    harness = Harness(github_client, None)

    def no_identity():
        raise AuthError("Missing GitHub user or token")

    harness.orchestrator.identity = no_identity

    # When
    result = harness.orchestrator.run_cycle()

    # Then
    assert result.outcome == CycleOutcome.FAILED
    assert result.error_kind == "auth"


def test_run_cycle_given_file_edited_during_message_when_committed_then_snapshot_is_reprimed(
    tmp_path,
    github_client,
    identity,
) -> None:
    # Given
    active = _fresh_file(tmp_path / "notes.txt", "hello")
    harness = Harness(github_client, active)
    harness.identity = identity
    original_generate = harness.generator.generate

    def editing_generate(system_prompt: str, user_prompt: str) -> str:
        active.write_text("hello again", encoding="utf-8")
        return original_generate(system_prompt, user_prompt)

    harness.generator.generate = editing_generate

    # When
    result = harness.orchestrator.run_cycle()

    # Then
    assert result.outcome == CycleOutcome.COMMITTED
    assert harness.state.snapshots.get(active) == "hello again"


def test_run_cycle_given_cycle_in_progress_when_run_again_then_overlap_is_skipped(
    tmp_path,
    github_client,
    identity,
) -> None:
    # Given
    active = _fresh_file(tmp_path / "notes.txt", "hello")
    harness = Harness(github_client, active)
    harness.identity = identity
    entered = threading.Event()
    release = threading.Event()
    nested: list[CycleResult] = []

    def slow_generate(system_prompt: str, user_prompt: str) -> str:
        entered.set()
        release.wait(timeout=5)
        return "Slow summary"

    harness.generator.generate = slow_generate
    worker = threading.Thread(target=harness.orchestrator.run_cycle)

    # When
    worker.start()
    entered.wait(timeout=5)
    nested.append(harness.orchestrator.run_cycle())
    release.set()
    worker.join(timeout=5)

    # Then
    assert nested[0].outcome == CycleOutcome.SKIPPED_BUSY
    assert harness.orchestrator.busy is False


def test_scheduler_given_invalid_interval_when_created_then_default_is_used() -> None:
    # Given
    orchestrator = object()

    # When
    scheduler = CycleScheduler(orchestrator, interval_minutes=0)  # type: ignore[arg-type]

    # Then
    assert scheduler.interval_minutes == 60
    assert scheduler.interval_seconds == 3600.0


def test_scheduler_given_max_cycles_when_run_then_each_result_is_reported() -> None:
    # Given
    class CountingOrchestrator:
        def __init__(self) -> None:
            self.runs = 0

        def run_cycle(self) -> CycleResult:
            self.runs += 1
            return CycleResult(outcome=CycleOutcome.NO_CHANGES, change_set=ChangeSet.empty("file_snapshot"))

    orchestrator = CountingOrchestrator()
    reported: list[CycleResult] = []
    scheduler = CycleScheduler(orchestrator, interval_minutes=1, on_result=reported.append)  # type: ignore[arg-type]
    scheduler.interval_seconds = 0

    # When
    started = scheduler.run_forever(max_cycles=3)

    # Then
    assert started == 3
    assert orchestrator.runs == 3
    assert len(reported) == 3


def test_scheduler_given_cycle_raises_unexpectedly_when_run_then_failure_is_reported_and_loop_continues() -> None:
    # Given
    class FlakyOrchestrator:
        def __init__(self) -> None:
            self.calls = 0

        def run_cycle(self) -> CycleResult:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("boom")
            return CycleResult(outcome=CycleOutcome.NO_CHANGES)

    orchestrator = FlakyOrchestrator()
    reported: list[CycleResult] = []
    scheduler = CycleScheduler(orchestrator, interval_minutes=1, on_result=reported.append)  # type: ignore[arg-type]
    scheduler.interval_seconds = 0

    # When
    started = scheduler.run_forever(max_cycles=2)

    # Then
    assert started == 2
    assert orchestrator.calls == 2
    assert reported[0].outcome == CycleOutcome.FAILED
    assert reported[0].error_kind == "unexpected"
    assert reported[0].detail == "boom"
    assert reported[1].outcome == CycleOutcome.NO_CHANGES


def test_scheduler_given_stop_before_run_when_run_then_no_cycle_starts() -> None:
    # Given
    class FailingOrchestrator:
        def run_cycle(self) -> CycleResult:
            raise AssertionError("should not run")

    scheduler = CycleScheduler(FailingOrchestrator(), interval_minutes=1)  # type: ignore[arg-type]
    scheduler.interval_seconds = 0
    scheduler.stop()

    # When
    started = scheduler.run_forever()

    # Then
    assert started == 0


def test_build_orchestrator_given_settings_when_built_then_state_and_collaborators_follow_settings(tmp_path) -> None:
    # Given
    settings = Settings(include_unstaged=True, auto_commit_mode=True, interval_minutes=-5, log_path="logs/journal.txt")

    # When
    orchestrator = build_orchestrator(
        settings,
        work_dir=tmp_path,
        identity=lambda: None,  # type: ignore[arg-type,return-value]
        active_file=lambda: None,
        confirm=lambda _branch: True,
        prompt=lambda _label: None,
    )

    # Then
    assert orchestrator.state.auto_commit_mode is True
    assert orchestrator.state.interval_minutes == 60
    assert orchestrator.capture.version_control.include_unstaged is True
    assert orchestrator.capture.snapshot.snapshots is orchestrator.state.snapshots
    assert orchestrator.appender.log_path == "logs/journal.txt"
