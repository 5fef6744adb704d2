"""Typer-based CLI for recording code changes into a remote commit log."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import typer

from auto_log.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_ENV_FILE,
    Settings,
    load_environment,
    load_settings,
    normalize_interval,
    resolve_identity,
)
from auto_log.errors import AutoLogError
from auto_log.github import GitHubClient
from auto_log.history import activity_stats, export_csv, format_history, parse_commits
from auto_log.messages import resolve_ai_token
from auto_log.models import CommitEntry, CycleOutcome, CycleResult, RepositoryIdentity
from auto_log.orchestrator import CommitOrchestrator, CycleScheduler, build_orchestrator

app = typer.Typer(add_completion=False, help="auto-log: record code changes into a remote commit log")

DEFAULT_CSV_PATH = Path("commit_logs.csv")

OUTCOME_TEXT = {
    CycleOutcome.GUARD_REJECTED: "Cycle cancelled: default branch not confirmed.",
    CycleOutcome.NO_CHANGES: "No changes detected for commit.",
    CycleOutcome.NO_MESSAGE: "No commit message entered.",
    CycleOutcome.SKIPPED_BUSY: "Previous cycle still running; skipped.",
}


def _echo_step(step: int, total: int, message: str) -> None:
    """Print a normalized progress step line."""
    typer.echo(f"[{step}/{total}] {message}")


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def _load(config_path: Path, env_file: Path, **overrides: object) -> Settings:
    load_environment(env_file)
    try:
        return load_settings(config_path, **overrides)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _identity(settings: Settings, owner: str | None, token: str | None) -> RepositoryIdentity:
    try:
        return resolve_identity(settings, owner=owner, token=token)
    except AutoLogError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _confirm_branch(assume_yes: bool):
    def confirm(branch: str) -> bool:
        if assume_yes:
            return True
        return typer.confirm(
            f'Default branch is "{branch}", which is neither "main" nor "master". Continue?',
            default=False,
        )

    return confirm


def _prompt_message(label: str) -> str | None:
    return typer.prompt(label, default="", show_default=False)


def _report(result: CycleResult) -> None:
    if result.outcome == CycleOutcome.COMMITTED:
        typer.echo(f"Commit recorded: {result.message}")
    elif result.outcome == CycleOutcome.FAILED:
        typer.echo(f"Cycle failed [{result.error_kind}]: {result.detail or 'no detail'}", err=True)
    else:
        typer.echo(OUTCOME_TEXT[result.outcome])


def _build(
    settings: Settings,
    owner: str | None,
    token: str | None,
    work_dir: Path,
    active_file: Path | None,
    assume_yes: bool,
) -> CommitOrchestrator:
    identity = _identity(settings, owner, token)
    resolved_active = active_file.resolve() if active_file else None
    return build_orchestrator(
        settings,
        work_dir=work_dir,
        identity=lambda: identity,
        active_file=lambda: resolved_active,
        confirm=_confirm_branch(assume_yes),
        prompt=_prompt_message,
    )


def _fetch_history(settings: Settings, owner: str | None, token: str | None) -> list[CommitEntry]:
    identity = _identity(settings, owner, token)
    client = GitHubClient(base_url=settings.api_base_url, timeout=settings.http_timeout)
    try:
        return parse_commits(client.list_commits(identity))
    except AutoLogError as exc:
        raise typer.BadParameter(f"Unable to fetch commits: {exc}") from exc


OwnerOption = typer.Option(None, "--owner", help="GitHub user owning the log repository")
TokenOption = typer.Option(None, "--token", help="GitHub token (defaults to GITHUB_TOKEN)")
RepoOption = typer.Option(None, "--repo", help="Log repository name")
ConfigOption = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="JSON settings file")
EnvFileOption = typer.Option(DEFAULT_ENV_FILE, "--env-file", help="Env file loaded at startup")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable info logging")


@app.command("run-once")
def run_once(
    owner: str | None = OwnerOption,
    token: str | None = TokenOption,
    repo: str | None = RepoOption,
    work_dir: Path = typer.Option(Path("."), "--work-dir", help="Directory to inspect for changes"),
    active_file: Path | None = typer.Option(None, "--active-file", help="File to track without git"),
    auto: bool | None = typer.Option(None, "--auto/--manual", help="AI or manual commit messages"),
    include_unstaged: bool | None = typer.Option(None, "--include-unstaged/--staged-only"),
    interval: int | None = typer.Option(None, "--interval", help="Change window in minutes"),
    assume_yes: bool = typer.Option(False, "--yes", "-y", help="Skip the branch confirmation"),
    config_path: Path = ConfigOption,
    env_file: Path = EnvFileOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run a single guard -> capture -> message -> append cycle."""
    _configure_logging(verbose)
    settings = _load(
        config_path,
        env_file,
        repository_name=repo,
        auto_commit_mode=auto,
        include_unstaged=include_unstaged,
        interval_minutes=interval,
    )
    orchestrator = _build(settings, owner, token, work_dir, active_file, assume_yes)
    result = orchestrator.run_cycle()
    _report(result)
    if result.outcome == CycleOutcome.FAILED:
        raise typer.Exit(code=1)


@app.command("start")
def start(
    owner: str | None = OwnerOption,
    token: str | None = TokenOption,
    repo: str | None = RepoOption,
    work_dir: Path = typer.Option(Path("."), "--work-dir", help="Directory to inspect for changes"),
    active_file: Path | None = typer.Option(None, "--active-file", help="File to track without git"),
    auto: bool | None = typer.Option(None, "--auto/--manual", help="AI or manual commit messages"),
    include_unstaged: bool | None = typer.Option(None, "--include-unstaged/--staged-only"),
    interval: int | None = typer.Option(None, "--interval", help="Minutes between cycles"),
    assume_yes: bool = typer.Option(False, "--yes", "-y", help="Skip the branch confirmation"),
    config_path: Path = ConfigOption,
    env_file: Path = EnvFileOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run a cycle every interval until interrupted."""
    _configure_logging(verbose)
    if interval is not None and interval <= 0:
        typer.echo("Invalid interval. Using 60 minutes.")
    settings = _load(
        config_path,
        env_file,
        repository_name=repo,
        auto_commit_mode=auto,
        include_unstaged=include_unstaged,
        interval_minutes=normalize_interval(interval) if interval is not None else None,
    )
    _echo_step(1, 2, f"Logging to {_identity(settings, owner, token).full_name}")
    orchestrator = _build(settings, owner, token, work_dir, active_file, assume_yes)
    scheduler = CycleScheduler(orchestrator, settings.interval_minutes, on_result=_report)

    _echo_step(2, 2, f"Automatic commits every {scheduler.interval_minutes} minutes (Ctrl+C to stop)")
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        scheduler.stop()
        typer.echo("Code tracking stopped.")


@app.command("history")
def history(
    owner: str | None = OwnerOption,
    token: str | None = TokenOption,
    repo: str | None = RepoOption,
    config_path: Path = ConfigOption,
    env_file: Path = EnvFileOption,
) -> None:
    """Print the commit history of the log repository."""
    settings = _load(config_path, env_file, repository_name=repo)
    entries = _fetch_history(settings, owner, token)
    if not entries:
        typer.echo("No commits found.")
        return
    typer.echo("Commit history:\n")
    typer.echo(format_history(entries))


@app.command("export-csv")
def export_csv_command(
    output: Path = typer.Option(DEFAULT_CSV_PATH, "--output", "-o", help="CSV destination"),
    owner: str | None = OwnerOption,
    token: str | None = TokenOption,
    repo: str | None = RepoOption,
    config_path: Path = ConfigOption,
    env_file: Path = EnvFileOption,
) -> None:
    """Export the commit history of the log repository to CSV."""
    settings = _load(config_path, env_file, repository_name=repo)
    entries = _fetch_history(settings, owner, token)
    if not entries:
        typer.echo("No commits found to export.")
        return
    path = export_csv(entries, output)
    typer.echo(f"History exported to: {path}")


@app.command("stats")
def stats(
    owner: str | None = OwnerOption,
    token: str | None = TokenOption,
    repo: str | None = RepoOption,
    config_path: Path = ConfigOption,
    env_file: Path = EnvFileOption,
) -> None:
    """Show estimated programming time from recent commits."""
    settings = _load(config_path, env_file, repository_name=repo)
    summary = activity_stats(_fetch_history(settings, owner, token))
    typer.echo(f"Daily: {summary.daily}")
    typer.echo(f"Weekly: {summary.weekly}")
    typer.echo(f"Monthly: {summary.monthly}")


@app.command("doctor")
def doctor(
    config_path: Path = ConfigOption,
    env_file: Path = EnvFileOption,
) -> None:
    """Print local environment diagnostics used by the CLI."""
    env_loaded = load_environment(env_file)
    typer.echo(f"Config exists: {config_path.exists()} ({config_path})")
    typer.echo(f"Env file loaded: {env_loaded} ({env_file})")
    try:
        settings = load_settings(config_path)
    except ValueError as exc:
        typer.echo(f"Config invalid: {exc}")
        return
    typer.echo(f"Repository name: {settings.repository_name}")
    typer.echo(f"GITHUB_USER set: {bool(os.getenv('GITHUB_USER'))}")
    typer.echo(f"GITHUB_TOKEN set: {bool(os.getenv('GITHUB_TOKEN'))}")
    typer.echo(f"AI token set: {bool(resolve_ai_token(settings.hf_api_token))}")


if __name__ == "__main__":
    app()
