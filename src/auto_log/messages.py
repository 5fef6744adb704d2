"""Commit message acquisition: AI completion with fallbacks, or manual entry."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime

from auto_log.errors import MessageGenerationError
from auto_log.prompting import build_commit_prompt, build_system_prompt

logger = logging.getLogger(__name__)

DEFAULT_AI_BASE_URL = "https://models.inference.ai.azure.com"
DEFAULT_AI_MODEL = "gpt-4o"
AI_TOKEN_ENV = "HF_API_TOKEN"
MANUAL_PROMPT_LABEL = "Mensagem de Commit:"


def resolve_ai_token(configured_token: str | None = None) -> str | None:
    """Resolve the completion service token.

    Resolution order:
    1. ``HF_API_TOKEN`` environment variable (possibly loaded from an env file).
    2. ``configured_token`` from the settings file.

    Returns:
        The non-empty token when found, otherwise ``None``.
    """
    token = (os.getenv(AI_TOKEN_ENV) or "").strip()
    if token:
        return token
    token = (configured_token or "").strip()
    return token or None


def localized_timestamp(now: datetime) -> str:
    return now.strftime("%d/%m/%Y %H:%M:%S")


def fallback_message(now: datetime) -> str:
    return f"Auto commit realizado em {localized_timestamp(now)} (fallback)"


def empty_response_message(now: datetime) -> str:
    return f"update realizado em {localized_timestamp(now)}"


class ChatCompletionClient:
    """Thin adapter around an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        model_name: str = DEFAULT_AI_MODEL,
        base_url: str = DEFAULT_AI_BASE_URL,
        configured_token: str | None = None,
    ):
        self.model_name = model_name
        self.base_url = base_url
        self.configured_token = configured_token

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Return the first choice's content as sent. May be ``""``.

        Raises:
            MessageGenerationError: If no token is configured or the call fails.
        """
        api_key = resolve_ai_token(self.configured_token)
        if not api_key:
            raise MessageGenerationError(f"Missing {AI_TOKEN_ENV} (set env var or hfAPIToken setting)")

        from openai import OpenAI

        try:
            client = OpenAI(base_url=self.base_url, api_key=api_key)
            response = client.chat.completions.create(
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "developer", "content": user_prompt},
                ],
                model=self.model_name,
                temperature=1.0,
                top_p=1.0,
                max_tokens=1000,
            )
            content = response.choices[0].message.content
        except Exception as exc:
            raise MessageGenerationError(f"Completion request failed: {exc}") from exc
        return content or ""


class CommitMessageProvider:
    """Obtain a commit message for captured changes.

    In auto mode generation errors never escape: they are masked by a
    timestamped fallback message. In manual mode an empty entry yields
    ``None`` and the caller decides what to do.
    """

    def __init__(
        self,
        generator: ChatCompletionClient,
        prompt: Callable[[str], str | None],
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.generator = generator
        self.prompt = prompt
        self.clock = clock

    def generate(self, changes: str) -> str:
        try:
            text = self.generator.generate(
                system_prompt=build_system_prompt(),
                user_prompt=build_commit_prompt(changes),
            )
        except MessageGenerationError as exc:
            logger.error("Commit message generation failed: %s", exc)
            return fallback_message(self.clock())
        if not text.strip():
            return empty_response_message(self.clock())
        return text

    def ask(self) -> str | None:
        entered = self.prompt(MANUAL_PROMPT_LABEL)
        if entered is None or not entered.strip():
            return None
        return entered

    def provide(self, changes: str, auto_mode: bool) -> str | None:
        if auto_mode:
            return self.generate(changes)
        return self.ask()
