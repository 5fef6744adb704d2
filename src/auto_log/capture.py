"""Change capture strategies: git-backed diffs and file snapshot diffs."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from auto_log.differ import line_diff
from auto_log.errors import DiffCaptureError, RepoProbeError
from auto_log.models import ChangeSet
from auto_log.snapshot import SnapshotStore
from auto_log.vcs import GitClient

logger = logging.getLogger(__name__)

ActiveFileProvider = Callable[[], Path | None]


class CaptureStrategy(Protocol):
    def capture(self) -> ChangeSet: ...


class VersionControlCapture:
    """Staged diff, optionally followed by the unstaged diff."""

    def __init__(self, git: GitClient, include_unstaged: bool = False):
        self.git = git
        self.include_unstaged = include_unstaged

    def capture(self) -> ChangeSet:
        full_diff = self.git.diff(staged=True)
        if self.include_unstaged:
            full_diff += "\n" + self.git.diff(staged=False)
        return ChangeSet(source_kind="version_controlled", text=full_diff.strip())


class SnapshotCapture:
    """Diff the active file against its last observed content.

    A file whose modification time is older than one cycle interval is
    considered untouched, which keeps stale content from being announced
    again. The snapshot is refreshed on every read.
    """

    def __init__(
        self,
        snapshots: SnapshotStore,
        active_file: ActiveFileProvider,
        interval_minutes: int,
        clock: Callable[[], float] = time.time,
    ):
        self.snapshots = snapshots
        self.active_file = active_file
        self.interval_minutes = interval_minutes
        self.clock = clock

    def capture(self) -> ChangeSet:
        path = self.active_file()
        if path is None:
            raise DiffCaptureError("No active file to inspect.")

        path = Path(path)
        try:
            current = path.read_text(encoding="utf-8")
            modified_at = path.stat().st_mtime
        except (OSError, UnicodeDecodeError) as exc:
            raise DiffCaptureError(f"Unable to read {path}: {exc}") from exc

        previous = self.snapshots.get(path)
        self.snapshots.set(path, current)

        if not current.strip():
            logger.info("Active file %s is empty; nothing to record", path)
            return ChangeSet.empty("file_snapshot")

        threshold = self.clock() - self.interval_minutes * 60
        if modified_at < threshold:
            logger.info("Active file %s was not modified during the last interval", path)
            return ChangeSet.empty("file_snapshot")

        diff = current if previous is None else line_diff(previous, current)
        if not diff.strip():
            return ChangeSet.empty("file_snapshot")
        return ChangeSet(source_kind="file_snapshot", text=diff, subject_path=str(path))


class ChangeCaptureService:
    """Pick a capture strategy with a single repository probe per cycle."""

    def __init__(
        self,
        git: GitClient,
        snapshots: SnapshotStore,
        active_file: ActiveFileProvider,
        include_unstaged: bool = False,
        interval_minutes: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.git = git
        self.version_control = VersionControlCapture(git, include_unstaged=include_unstaged)
        self.snapshot = SnapshotCapture(snapshots, active_file, interval_minutes, clock=clock)

    def select_strategy(self) -> CaptureStrategy:
        try:
            is_repo = self.git.is_repository()
        except RepoProbeError as exc:
            logger.warning("Repository probe failed, using file snapshots: %s", exc)
            is_repo = False
        return self.version_control if is_repo else self.snapshot

    def capture(self) -> ChangeSet:
        return self.select_strategy().capture()
