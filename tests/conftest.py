"""Shared pytest fixtures: an in-memory session store and a scripted provider."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest

from notechat.analysis.extractor import extract_analysis
from notechat.config.schema import Config
from notechat.core.cancel import CancellationToken
from notechat.core.errors import ProviderError
from notechat.core.types import (
    AIContext,
    ChatOptions,
    ChatResponse,
    ConnectionStatus,
    Message,
    StreamChunk,
    Usage,
)
from notechat.provider.catalog import ModelDescriptor, ProviderDescriptor
from notechat.session.storage import MemoryStore
from notechat.session.store import SessionStore


class FakeProvider:
    """Scripted AsyncProvider for orchestrator tests.

    Attributes:
        reply: Text returned by chat().
        chunks: Deltas yielded by stream() before the terminal chunk.
        hang_after_chunks: If set, stream() waits for cancellation instead
            of finishing.
        chat_gate: If set, chat() blocks until the event is set.
        error: Raised by chat()/stream() when set.
        complete_replies: Texts returned by successive complete() calls.
        complete_error: Raised by complete() when set.
        connection: Returned by check_connection().
    """

    def __init__(self) -> None:
        self.reply = "Hello from the model"
        self.chunks: list[str] = ["Hel", "lo ", "there"]
        self.hang_after_chunks = False
        self.chat_gate: asyncio.Event | None = None
        self.error: ProviderError | None = None
        self.complete_replies: list[str] = []
        self.complete_error: ProviderError | None = None
        self.connection = ConnectionStatus(connected=True, models=("fake-model",))
        self.intent_detection = False
        self.usage = Usage(prompt_tokens=12, completion_tokens=5, estimated_cost=0.002)
        self.chat_calls: list[tuple[list[Message], AIContext | None, ChatOptions | None]] = []
        self.complete_prompts: list[str] = []
        self.closed = 0
        self._model = ModelDescriptor("fake-model", "Fake Model", 8192, 0.001)

    @property
    def provider_id(self) -> str:
        return "fake"

    @property
    def model(self) -> ModelDescriptor:
        return self._model

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            id="fake",
            name="Fake",
            api_key_required=False,
            intent_detection=self.intent_detection,
            models=(self._model,),
        )

    async def chat(
        self,
        messages: list[Message],
        context: AIContext | None = None,
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        self.chat_calls.append((list(messages), context, options))
        if self.chat_gate is not None:
            await self.chat_gate.wait()
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return ChatResponse(id="resp-1", content=self.reply, model_id="fake-model", usage=self.usage)

    async def stream(
        self,
        messages: list[Message],
        context: AIContext | None = None,
        options: ChatOptions | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamChunk]:
        self.chat_calls.append((list(messages), context, options))
        if self.error is not None:
            raise self.error
        cancelled = asyncio.Event()
        if cancel_token is not None:
            cancel_token.on_cancel(cancelled.set)
        for piece in self.chunks:
            if cancelled.is_set():
                return
            yield StreamChunk(content=piece)
            await asyncio.sleep(0)
        if self.hang_after_chunks:
            await cancelled.wait()
            return
        if cancelled.is_set():
            return
        yield StreamChunk(content="", done=True, tokens_so_far=5, usage=self.usage)

    async def complete(self, prompt: str, options: ChatOptions | None = None) -> str:
        self.complete_prompts.append(prompt)
        if self.complete_error is not None:
            raise self.complete_error
        return self.complete_replies.pop(0) if self.complete_replies else "{}"

    async def analyze(self, content: str, kind: Any) -> Any:
        return extract_analysis(await self.complete(content), kind)

    def estimate_usage(self, prompt_tokens: int, completion_tokens: int) -> Usage:
        return Usage(prompt_tokens, completion_tokens, 0.0)

    async def check_connection(self) -> ConnectionStatus:
        return self.connection

    async def aclose(self) -> None:
        self.closed += 1


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_factory(fake_provider: FakeProvider) -> Any:
    """Factory handing out the shared fake and recording what it was asked for."""

    def factory(config: Any, model_id: str) -> FakeProvider:
        factory.requests.append((config, model_id))
        return fake_provider

    factory.requests = []
    return factory


@pytest.fixture
def kv() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def session_store(kv: MemoryStore) -> SessionStore:
    return SessionStore(kv)


@pytest.fixture
def config() -> Config:
    return Config()
