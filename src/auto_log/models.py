"""Pydantic models shared across capture, messaging, and remote log layers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

SourceKind = Literal["version_controlled", "file_snapshot"]


class ChangeSet(BaseModel):
    """Text describing the changes detected during one cycle."""

    source_kind: SourceKind
    text: str = ""
    subject_path: str | None = None

    @classmethod
    def empty(cls, source_kind: SourceKind) -> "ChangeSet":
        return cls(source_kind=source_kind, text="")

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def describe(self) -> str:
        """Render the change text the way it is handed to the message provider."""
        if self.source_kind == "file_snapshot" and self.subject_path:
            return f"Arquivo: {self.subject_path}\nDiferenças:\n{self.text}\n"
        return self.text


class RepositoryIdentity(BaseModel):
    """Owner, repository name and access token for the remote log repository."""

    owner: str
    repo: str
    token: str = Field(repr=False)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class RemoteLogDocument(BaseModel):
    """Current remote log body plus the revision token needed to overwrite it."""

    existing_text: str = ""
    revision_token: str | None = None

    @property
    def exists(self) -> bool:
        return self.revision_token is not None


class CommitRecord(BaseModel):
    """A single entry appended to the remote log."""

    timestamp_iso: str
    message: str

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("commit message must not be empty")
        return value

    def render(self) -> str:
        return f"\n[{self.timestamp_iso}]\n\n{self.message}"


class CommitEntry(BaseModel):
    """One commit from the log repository history listing."""

    date: datetime
    author: str
    message: str


class CycleOutcome(str, Enum):
    COMMITTED = "committed"
    GUARD_REJECTED = "guard_rejected"
    NO_CHANGES = "no_changes"
    NO_MESSAGE = "no_message"
    SKIPPED_BUSY = "skipped_busy"
    FAILED = "failed"


class CycleResult(BaseModel):
    """Outcome of one orchestration cycle, formatted by the presentation layer."""

    outcome: CycleOutcome
    message: str | None = None
    change_set: ChangeSet | None = None
    record: CommitRecord | None = None
    error_kind: str | None = None
    detail: str | None = None
