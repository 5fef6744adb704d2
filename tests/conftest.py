from __future__ import annotations

import base64
import json
import sys
from pathlib import Path
from typing import Any

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from auto_log.github import GitHubClient
from auto_log.models import RepositoryIdentity


class FakeGitHub:
    """In-memory stand-in for the GitHub endpoints used by auto-log."""

    def __init__(self, default_branch: str | None = "main") -> None:
        self.default_branch = default_branch
        self.files: dict[str, tuple[str, str]] = {}
        self.commits: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.put_bodies: list[dict[str, Any]] = []
        self.put_status: int | None = None
        self.put_error: dict[str, Any] | None = None
        self._revision = 0

    def seed_file(self, path: str, text: str) -> str:
        self._revision += 1
        sha = f"sha-{self._revision}"
        self.files[path] = (text, sha)
        return sha

    def text(self, path: str) -> str:
        return self.files[path][0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        # repos/{owner}/{repo}[/...]
        rest = parts[3:]

        if not rest:
            if self.default_branch is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json={"default_branch": self.default_branch})

        if rest[0] == "commits":
            return httpx.Response(200, json=self.commits)

        if rest[0] == "contents":
            path = "/".join(rest[1:])
            if request.method == "GET":
                if path not in self.files:
                    return httpx.Response(404, json={"message": "Not Found"})
                text, sha = self.files[path]
                encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
                return httpx.Response(200, json={"content": encoded, "sha": sha})

            body = json.loads(request.content)
            self.put_bodies.append(body)
            if self.put_status is not None:
                return httpx.Response(self.put_status, json=self.put_error or {})
            current = self.files.get(path)
            if current and body.get("sha") != current[1]:
                return httpx.Response(409, json={"message": f"{path} does not match {body.get('sha')}"})
            text = base64.b64decode(body["content"]).decode("utf-8")
            sha = self.seed_file(path, text)
            return httpx.Response(200, json={"content": {"sha": sha}})

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def github_client(fake_github: FakeGitHub) -> GitHubClient:
    return GitHubClient(transport=httpx.MockTransport(fake_github.handler))


@pytest.fixture
def identity() -> RepositoryIdentity:
    return RepositoryIdentity(owner="alice", repo="auto-log", token="ghp-test-token")


@pytest.fixture
def sample_commits() -> list[dict[str, object]]:
    return [
        {
            "commit": {
                "author": {"date": "2026-01-03T10:00:00Z", "name": "alice"},
                "message": "Add parser",
            }
        },
        {
            "commit": {
                "author": {"date": "2026-01-01T09:30:00Z", "name": "bob"},
                "message": 'Fix "quoted" bug',
            }
        },
    ]
