from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from auto_log.github import GitHubClient
from auto_log.models import CommitRecord, RepositoryIdentity

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = "commit_log.txt"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """Format ``moment`` as UTC ISO-8601 with millisecond precision and ``Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RemoteLogAppender:
    """Append timestamped entries to a remote text journal.

    The current document is read first so the write can carry its revision
    token; a document that does not exist yet is created without one. A
    rejected token is surfaced, never retried, so intervening writes are not
    overwritten.
    """

    def __init__(
        self,
        client: GitHubClient,
        log_path: str = DEFAULT_LOG_PATH,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.client = client
        self.log_path = log_path
        self.clock = clock

    def append(self, identity: RepositoryIdentity, message: str) -> CommitRecord:
        """Append ``message`` to the log and return the written record.

        Raises:
            ValueError: If ``message`` is blank.
            AuthError: If the log cannot be read with the given credentials.
            RemoteReadError: If the current document cannot be read.
            RemoteWriteError: If the write is rejected (``RemoteWriteConflict``
                when the revision token is stale or missing).
        """
        record = CommitRecord(timestamp_iso=iso_timestamp(self.clock()), message=message)
        document = self.client.get_contents(identity, self.log_path)
        new_body = document.existing_text + record.render()

        logger.info(
            "%s %s in %s",
            "Updating" if document.exists else "Creating",
            self.log_path,
            identity.full_name,
        )
        self.client.put_contents(
            identity,
            self.log_path,
            new_body,
            message=message,
            sha=document.revision_token,
        )
        return record
