"""GitHub REST calls used by the branch guard, log appender, and history views."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote

import httpx

from auto_log.errors import (
    AuthError,
    BranchQueryError,
    RemoteReadError,
    RemoteWriteConflict,
    RemoteWriteError,
)
from auto_log.models import RemoteLogDocument, RepositoryIdentity

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.github.com"
TIMEOUT_DEFAULT = 30.0
GENERIC_WRITE_ERROR = "Failed to write the commit log"


def _headers(identity: RepositoryIdentity) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {identity.token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "auto-log",
    }


def _error_message(response: httpx.Response) -> str | None:
    """Return the ``message`` field of an error payload, if any."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return None


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(encoded: str) -> str:
    # GitHub wraps base64 payloads at 60 columns.
    return base64.b64decode("".join(encoded.split())).decode("utf-8")


class GitHubClient:
    """Minimal synchronous client over ``httpx`` for one repository host."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = TIMEOUT_DEFAULT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _request(self, method: str, identity: RepositoryIdentity, path: str, **kwargs: Any) -> httpx.Response:
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            return client.request(method, path, headers=_headers(identity), **kwargs)

    @staticmethod
    def _repo_path(identity: RepositoryIdentity) -> str:
        return f"/repos/{quote(identity.owner, safe='')}/{quote(identity.repo, safe='')}"

    def _contents_path(self, identity: RepositoryIdentity, file_path: str) -> str:
        return f"{self._repo_path(identity)}/contents/{quote(file_path.lstrip('/'))}"

    def get_default_branch(self, identity: RepositoryIdentity) -> str:
        """Return the repository default branch.

        Raises:
            BranchQueryError: On transport failure, non-success status, or a
                payload without ``default_branch``.
        """
        try:
            response = self._request("GET", identity, self._repo_path(identity))
        except httpx.HTTPError as exc:
            raise BranchQueryError(f"Repository lookup failed: {exc}") from exc

        if response.status_code >= 400:
            raise BranchQueryError(
                f"Repository lookup for {identity.full_name} returned {response.status_code}"
            )
        try:
            branch = response.json()["default_branch"]
        except (ValueError, KeyError, TypeError) as exc:
            raise BranchQueryError("Repository payload has no default_branch") from exc
        return str(branch)

    def get_contents(self, identity: RepositoryIdentity, file_path: str) -> RemoteLogDocument:
        """Fetch a text document and its revision token.

        A missing document yields an empty body without a token.

        Raises:
            AuthError: On 401/403 responses.
            RemoteReadError: On transport failure or any other error response.
        """
        try:
            response = self._request("GET", identity, self._contents_path(identity, file_path))
        except httpx.HTTPError as exc:
            raise RemoteReadError(f"Unable to read {file_path}: {exc}") from exc

        if response.status_code == 404:
            return RemoteLogDocument(existing_text="", revision_token=None)
        if response.status_code in (401, 403):
            raise AuthError(_error_message(response) or f"Access denied reading {file_path}")
        if response.status_code >= 400:
            detail = _error_message(response) or f"HTTP {response.status_code}"
            raise RemoteReadError(f"Unable to read {file_path}: {detail}")

        try:
            payload = response.json()
            content = payload.get("content") or ""
            # Files over 1 MB come back with encoding "none" and no content.
            truncated = payload.get("encoding") == "none" or (not content and payload.get("size", 0) > 0)
            text = "" if truncated else decode_content(content)
            sha = payload["sha"]
        except (ValueError, KeyError, TypeError, AttributeError, binascii.Error) as exc:
            raise RemoteReadError(f"Malformed contents payload for {file_path}") from exc
        if truncated:
            raise RemoteReadError(f"{file_path} is too large to read through the contents API")
        return RemoteLogDocument(existing_text=text, revision_token=sha)

    def put_contents(
        self,
        identity: RepositoryIdentity,
        file_path: str,
        text: str,
        message: str,
        sha: str | None = None,
    ) -> dict[str, Any]:
        """Create or update a document. ``sha`` is sent only when given.

        Raises:
            RemoteWriteConflict: When the backend rejects the revision token.
            RemoteWriteError: On transport failure or any other error response.
        """
        body: dict[str, Any] = {"message": message, "content": encode_content(text)}
        if sha:
            body["sha"] = sha

        try:
            response = self._request("PUT", identity, self._contents_path(identity, file_path), json=body)
        except httpx.HTTPError as exc:
            raise RemoteWriteError(f"{GENERIC_WRITE_ERROR}: {exc}") from exc

        if response.status_code >= 400:
            detail = _error_message(response) or GENERIC_WRITE_ERROR
            logger.error("Write to %s failed with %s: %s", file_path, response.status_code, detail)
            if response.status_code == 409 or (response.status_code == 422 and "sha" in detail.lower()):
                raise RemoteWriteConflict(detail)
            raise RemoteWriteError(detail)

        try:
            return response.json()
        except ValueError:
            return {}

    def list_commits(self, identity: RepositoryIdentity, per_page: int = 100) -> list[dict[str, Any]]:
        """Return the raw commit list of the repository, newest first.

        Raises:
            AuthError: On 401/403 responses.
            RemoteReadError: On transport failure or any other error response.
        """
        try:
            response = self._request(
                "GET", identity, f"{self._repo_path(identity)}/commits", params={"per_page": per_page}
            )
        except httpx.HTTPError as exc:
            raise RemoteReadError(f"Unable to list commits: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthError(_error_message(response) or "Access denied listing commits")
        if response.status_code >= 400:
            raise RemoteReadError(
                f"Unable to list commits: {_error_message(response) or response.reason_phrase}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteReadError("Commit listing is not valid JSON") from exc
        if not isinstance(payload, list):
            raise RemoteReadError("Commit listing is not a list")
        return payload
