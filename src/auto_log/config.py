"""Configuration surface: settings file, environment, and credentials."""

from __future__ import annotations

import json
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from auto_log.errors import AuthError
from auto_log.models import RepositoryIdentity

DEFAULT_CONFIG_PATH = Path(".auto_log/config.json")
DEFAULT_ENV_FILE = Path("process.env")
DEFAULT_INTERVAL_MINUTES = 60


class Settings(BaseModel):
    """Recognized options. camelCase aliases match the editor configuration keys."""

    model_config = ConfigDict(populate_by_name=True)

    repository_name: str = Field("auto-log", alias="repositoryName")
    include_unstaged: bool = Field(False, alias="includeUnstaged")
    hf_api_token: str | None = Field(None, alias="hfAPIToken", repr=False)
    interval_minutes: int = Field(DEFAULT_INTERVAL_MINUTES, alias="intervalMinutes")
    auto_commit_mode: bool = Field(False, alias="autoCommitMode")
    log_path: str = Field("commit_log.txt", alias="logPath")
    api_base_url: str = Field("https://api.github.com", alias="apiBaseUrl")
    ai_base_url: str = Field("https://models.inference.ai.azure.com", alias="aiBaseUrl")
    ai_model: str = Field("gpt-4o", alias="aiModel")
    http_timeout: float = Field(30.0, alias="httpTimeout", gt=0)


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH, **overrides: object) -> Settings:
    """Load settings from an optional JSON file, then apply non-``None`` overrides.

    Raises:
        ValueError: If the file is not valid JSON or fails validation.
    """
    data: dict[str, object] = {}
    if config_path.exists():
        try:
            loaded = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a JSON object: {config_path}")
        data.update(loaded)

    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings in {config_path}: {exc}") from exc

    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings


def load_environment(env_file: Path = DEFAULT_ENV_FILE) -> bool:
    """Load ``env_file`` into ``os.environ`` when it exists. Existing values win."""
    if env_file.exists():
        return load_dotenv(env_file, override=False)
    return False


def normalize_interval(value: object) -> int:
    """Return ``value`` as a positive minute count, or the 60 minute default."""
    try:
        minutes = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_INTERVAL_MINUTES
    return minutes if minutes > 0 else DEFAULT_INTERVAL_MINUTES


def resolve_identity(
    settings: Settings,
    owner: str | None = None,
    token: str | None = None,
) -> RepositoryIdentity:
    """Resolve the log repository identity from explicit values or environment.

    Resolution order for each credential:
    1. Explicit argument.
    2. ``GITHUB_USER`` / ``GITHUB_TOKEN`` environment variables.

    Raises:
        AuthError: If owner or token cannot be resolved.
    """
    resolved_owner = (owner or os.getenv("GITHUB_USER") or "").strip()
    resolved_token = (token or os.getenv("GITHUB_TOKEN") or "").strip()
    if not resolved_owner or not resolved_token:
        raise AuthError("Missing GitHub user or token (set GITHUB_USER and GITHUB_TOKEN)")
    return RepositoryIdentity(owner=resolved_owner, repo=settings.repository_name, token=resolved_token)
