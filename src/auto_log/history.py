"""Read-only views over the log repository commit history."""

from __future__ import annotations

import csv
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from auto_log.errors import RemoteReadError
from auto_log.models import CommitEntry

MINUTES_PER_COMMIT = 15
CSV_HEADER = ("Data", "Autor", "Mensagem")


class ActivityStats(BaseModel):
    daily_commits: int
    weekly_commits: int
    monthly_commits: int

    @property
    def daily(self) -> str:
        return format_duration(self.daily_commits * MINUTES_PER_COMMIT)

    @property
    def weekly(self) -> str:
        return format_duration(self.weekly_commits * MINUTES_PER_COMMIT)

    @property
    def monthly(self) -> str:
        return format_duration(self.monthly_commits * MINUTES_PER_COMMIT)


def parse_commits(payload: list[dict[str, Any]]) -> list[CommitEntry]:
    """Convert a raw commit listing into ``CommitEntry`` values, keeping order."""
    entries: list[CommitEntry] = []
    for item in payload:
        commit = item.get("commit") or {}
        author = commit.get("author") or {}
        date = author.get("date")
        if not date:
            continue
        try:
            when = datetime.fromisoformat(date.replace("Z", "+00:00"))
        except (TypeError, AttributeError, ValueError) as exc:
            raise RemoteReadError(f"Commit date is not ISO-8601: {date!r}") from exc
        entries.append(
            CommitEntry(
                date=when,
                author=author.get("name") or "",
                message=commit.get("message") or "",
            )
        )
    return entries


def format_history(entries: list[CommitEntry]) -> str:
    lines = [f"{entry.date.isoformat()} - {entry.message} (por {entry.author})" for entry in entries]
    return "\n".join(lines)


def export_csv(entries: list[CommitEntry], target: Path) -> Path:
    """Write entries to ``target`` with every field quoted."""
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator="\n")
        handle.write(",".join(CSV_HEADER) + "\n")
        for entry in entries:
            writer.writerow([entry.date.isoformat(), entry.author, entry.message])
    return target


def format_duration(total_minutes: int) -> str:
    """Format minutes as ``Xh Ym``, dropping the hour part when zero."""
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"


def activity_stats(entries: list[CommitEntry], now: datetime | None = None) -> ActivityStats:
    """Count commits in the last 1, 7, and 30 days."""
    now = now or datetime.now(timezone.utc)

    def within(days: int) -> int:
        return sum(1 for entry in entries if now - entry.date <= timedelta(days=days))

    return ActivityStats(daily_commits=within(1), weekly_commits=within(7), monthly_commits=within(30))
