"""Error taxonomy for the change-detection and commit cycle.

Every error carries a short machine-readable ``kind`` and an optional
``detail`` string. Presentation code decides how to word them.
"""

from __future__ import annotations


class AutoLogError(RuntimeError):
    kind = "error"

    def __init__(self, detail: str | None = None):
        self.detail = detail
        super().__init__(detail or self.kind)


class RepoProbeError(AutoLogError):
    kind = "repo_probe"


class DiffCaptureError(AutoLogError):
    kind = "diff_capture"


class BranchQueryError(AutoLogError):
    kind = "branch_query"


class AuthError(AutoLogError):
    kind = "auth"


class MessageGenerationError(AutoLogError):
    kind = "message_generation"


class RemoteReadError(AutoLogError):
    kind = "remote_read"


class RemoteWriteError(AutoLogError):
    kind = "remote_write"


class RemoteWriteConflict(RemoteWriteError):
    kind = "remote_write_conflict"
