"""Fixtures for provider tests: API keys and an in-process HTTP transport."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

Responder = Callable[[httpx.Request], httpx.Response]


class RecordingTransport:
    """MockTransport handler that remembers every request it answered."""

    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


@pytest.fixture
def api_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set test keys for every hosted backend."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-openrouter-key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-anthropic-key")
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")


@pytest.fixture
def mock_http() -> Callable[[Any, Responder], RecordingTransport]:
    """Attach a recording MockTransport client to a provider."""

    def attach(provider: Any, responder: Responder) -> RecordingTransport:
        transport = RecordingTransport(responder)
        provider._client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        return transport

    return attach


def sse(*events: dict[str, Any], done: bool = True) -> bytes:
    """Encode events as a server-sent event body."""
    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def ndjson(*objects: dict[str, Any]) -> bytes:
    """Encode objects as newline-delimited JSON."""
    return "".join(json.dumps(obj) + "\n" for obj in objects).encode("utf-8")


@pytest.fixture
def sse_body() -> Callable[..., bytes]:
    return sse


@pytest.fixture
def ndjson_body() -> Callable[..., bytes]:
    return ndjson
