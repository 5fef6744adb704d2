"""One commit cycle end to end, plus the periodic scheduler that repeats it."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from auto_log.capture import ActiveFileProvider, ChangeCaptureService
from auto_log.config import Settings, normalize_interval
from auto_log.errors import AutoLogError
from auto_log.github import GitHubClient
from auto_log.guard import BranchSafetyGuard
from auto_log.log_appender import RemoteLogAppender
from auto_log.messages import ChatCompletionClient, CommitMessageProvider
from auto_log.models import ChangeSet, CycleOutcome, CycleResult, RepositoryIdentity
from auto_log.snapshot import SnapshotStore
from auto_log.vcs import GitClient

logger = logging.getLogger(__name__)


class OrchestratorState(BaseModel):
    """Mutable state carried from one cycle to the next."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    snapshots: SnapshotStore = Field(default_factory=SnapshotStore)
    auto_commit_mode: bool = False
    interval_minutes: int = 60


class CommitOrchestrator:
    """Run guard, capture, message, and append as one cycle.

    Only one cycle runs at a time; a call made while another is in flight
    returns ``skipped_busy`` without touching any collaborator.
    """

    def __init__(
        self,
        state: OrchestratorState,
        identity: Callable[[], RepositoryIdentity],
        guard: BranchSafetyGuard,
        capture: ChangeCaptureService,
        messages: CommitMessageProvider,
        appender: RemoteLogAppender,
        active_file: ActiveFileProvider,
    ):
        self.state = state
        self.identity = identity
        self.guard = guard
        self.capture = capture
        self.messages = messages
        self.appender = appender
        self.active_file = active_file
        self._in_progress = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_progress.locked()

    def run_cycle(self) -> CycleResult:
        if not self._in_progress.acquire(blocking=False):
            logger.warning("Previous cycle still running; skipping this one")
            return CycleResult(outcome=CycleOutcome.SKIPPED_BUSY)
        try:
            return self._run_cycle()
        finally:
            self._in_progress.release()

    def _run_cycle(self) -> CycleResult:
        change_set: ChangeSet | None = None
        try:
            identity = self.identity()
            if not self.guard.check(identity):
                return CycleResult(outcome=CycleOutcome.GUARD_REJECTED)

            change_set = self.capture.capture()
            if change_set.is_empty:
                logger.info("No changes detected")
                return CycleResult(outcome=CycleOutcome.NO_CHANGES, change_set=change_set)

            message = self.messages.provide(change_set.describe(), auto_mode=self.state.auto_commit_mode)
            if not message:
                return CycleResult(outcome=CycleOutcome.NO_MESSAGE, change_set=change_set)

            record = self.appender.append(identity, message)
        except AutoLogError as exc:
            logger.error("Cycle failed (%s): %s", exc.kind, exc)
            return CycleResult(
                outcome=CycleOutcome.FAILED,
                change_set=change_set,
                error_kind=exc.kind,
                detail=exc.detail,
            )

        if change_set.source_kind == "file_snapshot":
            self._reprime_snapshot()
        return CycleResult(
            outcome=CycleOutcome.COMMITTED,
            message=record.message,
            change_set=change_set,
            record=record,
        )

    def _reprime_snapshot(self) -> None:
        path = self.active_file()
        if path is None:
            return
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not refresh snapshot for %s: %s", path, exc)
            return
        self.state.snapshots.set(path, content)


class CycleScheduler:
    """Call ``run_cycle`` every ``interval_minutes`` until stopped.

    The first cycle runs after one full interval. ``stop`` prevents future
    cycles; a cycle already running is not interrupted.
    """

    def __init__(
        self,
        orchestrator: CommitOrchestrator,
        interval_minutes: int,
        on_result: Callable[[CycleResult], None] | None = None,
    ):
        self.orchestrator = orchestrator
        self.interval_minutes = normalize_interval(interval_minutes)
        self.on_result = on_result
        self.interval_seconds = self.interval_minutes * 60.0
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    def run_forever(self, max_cycles: int | None = None) -> int:
        """Block running cycles; return how many were started."""
        cycles = 0
        while not self._stop.wait(self.interval_seconds):
            try:
                result = self.orchestrator.run_cycle()
            except Exception as exc:
                logger.exception("Cycle raised unexpectedly")
                result = CycleResult(outcome=CycleOutcome.FAILED, error_kind="unexpected", detail=str(exc))
            cycles += 1
            if self.on_result:
                self.on_result(result)
            if max_cycles is not None and cycles >= max_cycles:
                break
        return cycles


def build_orchestrator(
    settings: Settings,
    work_dir: Path,
    identity: Callable[[], RepositoryIdentity],
    active_file: ActiveFileProvider,
    confirm: Callable[[str], bool],
    prompt: Callable[[str], str | None],
    state: OrchestratorState | None = None,
) -> CommitOrchestrator:
    """Wire the default collaborators from ``settings``."""
    state = state or OrchestratorState(
        auto_commit_mode=settings.auto_commit_mode,
        interval_minutes=normalize_interval(settings.interval_minutes),
    )
    client = GitHubClient(base_url=settings.api_base_url, timeout=settings.http_timeout)
    capture = ChangeCaptureService(
        GitClient(work_dir),
        state.snapshots,
        active_file,
        include_unstaged=settings.include_unstaged,
        interval_minutes=state.interval_minutes,
    )
    messages = CommitMessageProvider(
        ChatCompletionClient(
            model_name=settings.ai_model,
            base_url=settings.ai_base_url,
            configured_token=settings.hf_api_token,
        ),
        prompt=prompt,
    )
    return CommitOrchestrator(
        state=state,
        identity=identity,
        guard=BranchSafetyGuard(client, confirm),
        capture=capture,
        messages=messages,
        appender=RemoteLogAppender(client, log_path=settings.log_path),
        active_file=active_file,
    )
