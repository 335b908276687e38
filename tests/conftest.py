"""Shared test fixtures."""

from __future__ import annotations

import json
import shlex
import sys
import time
from pathlib import Path
from typing import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from specflow.llm.client import RetryingCompletionClient
from specflow.main import create_app
from specflow.settings import Settings

USE_CASE_ID = "login"


def gemini_ok(text: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]},
    )


def gemini_rate_limited() -> httpx.Response:
    return httpx.Response(
        429,
        json={"error": {"code": 429, "message": "Resource has been exhausted", "status": "RESOURCE_EXHAUSTED"}},
    )


def python_command(script: str) -> str:
    """A project test command running `script` with the current interpreter."""
    return shlex.join([sys.executable, "-c", script])


def wait_until(predicate: Callable[[], bool], timeout: float = 15.0, interval: float = 0.05) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeGemini:
    """Scripted responses for the generateContent endpoint, recording every request."""

    def __init__(self):
        self.responses: list[httpx.Response] = []
        self.requests: list[httpx.Request] = []
        self.delays: list[float] = []

    def queue(self, *responses: httpx.Response) -> None:
        self.responses.extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return gemini_ok("default reply")
        return self.responses.pop(0)

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)

    def prompt(self, index: int = -1) -> str:
        body = json.loads(self.requests[index].content)
        return body["contents"][0]["parts"][0]["text"]

    def client(self, **kwargs) -> RetryingCompletionClient:
        kwargs.setdefault("api_key", "test-key")
        return RetryingCompletionClient(
            sleep=self.sleep,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
            **kwargs,
        )


@pytest.fixture()
def fake_gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    """A target repository with a workflow config and one use case spec."""
    repo_path = tmp_path / "repo"
    (repo_path / "specs").mkdir(parents=True)
    (repo_path / "specs" / "login.md").write_text("# Login\n", encoding="utf-8")
    config = {
        "projectName": "Demo",
        "testCommand": "npm test",
        "useCases": [
            {"id": USE_CASE_ID, "title": "Login", "specPath": "specs/login.md"},
            {
                "id": "logout",
                "title": "Logout",
                "specPath": "specs/logout.md",
                "status": "in_progress",
                "version": "1.2.0",
                "createdAt": "2024-01-01T00:00:00Z",
                "updatedAt": "2024-01-02T00:00:00Z",
            },
        ],
    }
    (repo_path / "workflow.config.json").write_text(json.dumps(config), encoding="utf-8")
    return repo_path


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        PROJECTS_FILE=tmp_path / "data" / "projects.json",
        PROMPTS_FILE=tmp_path / "data" / "prompts.json",
        GEMINI_API_KEY="test-key",
        TEST_RUN_TIMEOUT_SECONDS=30,
    )


@pytest.fixture()
def client(settings: Settings, fake_gemini: FakeGemini):
    app = create_app(settings=settings, completion_client=fake_gemini.client())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def project(client: TestClient, repo: Path) -> dict:
    resp = client.post(
        "/projects",
        json={"name": "Demo", "repoPath": str(repo), "testCommand": python_command("print('all good')")},
    )
    assert resp.status_code == 201
    return resp.json()
