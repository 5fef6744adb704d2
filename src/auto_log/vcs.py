"""Thin git wrapper used by version-controlled change capture."""

from __future__ import annotations

import subprocess
from pathlib import Path

from auto_log.errors import DiffCaptureError, RepoProbeError


def run_git(work_dir: Path, args: list[str]) -> str:
    """Run a git command in ``work_dir`` and return stdout, raising on failure."""
    cmd = ["git", "-C", str(work_dir), *args]
    try:
        proc = subprocess.run(cmd, check=False, capture_output=True, encoding="utf-8", errors="replace")
    except OSError as exc:
        raise RuntimeError(f"git command failed: {' '.join(cmd)}\n{exc}") from exc
    if proc.returncode != 0:
        raise RuntimeError(f"git command failed: {' '.join(cmd)}\n{proc.stderr.strip()}")
    return proc.stdout


class GitClient:
    def __init__(self, work_dir: Path):
        self.work_dir = Path(work_dir)

    def is_repository(self) -> bool:
        """Return ``True`` when ``work_dir`` is inside a git work tree.

        Raises:
            RepoProbeError: If git itself cannot be executed.
        """
        cmd = ["git", "-C", str(self.work_dir), "rev-parse", "--is-inside-work-tree"]
        try:
            proc = subprocess.run(cmd, check=False, capture_output=True, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise RepoProbeError(str(exc)) from exc
        return proc.returncode == 0 and proc.stdout.strip() == "true"

    def diff(self, staged: bool) -> str:
        args = ["diff", "--no-color"]
        if staged:
            args.append("--staged")
        try:
            return run_git(self.work_dir, args)
        except RuntimeError as exc:
            kind = "staged" if staged else "unstaged"
            raise DiffCaptureError(f"Unable to capture {kind} changes: {exc}") from exc
