"""Core interfaces (protocols) for notechat.

This module defines the Protocol interfaces that components must implement.
Using Protocols enables structural subtyping, so tests and callers can plug
in their own providers and executors without inheriting from notechat
classes.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, Protocol

from notechat.core.cancel import CancellationToken
from notechat.core.types import (
    AIContext,
    ChatOptions,
    ChatResponse,
    ConnectionStatus,
    Message,
    StreamChunk,
    Usage,
)

if TYPE_CHECKING:
    from notechat.analysis.types import Analysis, AnalysisKind
    from notechat.config.schema import ProviderConfig
    from notechat.intent.types import StructuredIntent
    from notechat.provider.catalog import ModelDescriptor, ProviderDescriptor


class AsyncProvider(Protocol):
    """Protocol for async LLM backends.

    Every backend implements the same capability contract so the
    orchestrator never branches on backend identity except to select the
    adapter.
    """

    @property
    def provider_id(self) -> str: ...

    @property
    def model(self) -> ModelDescriptor: ...

    def describe(self) -> ProviderDescriptor:
        """Return the static catalog entry for this backend."""
        ...

    async def chat(
        self,
        messages: list[Message],
        context: AIContext | None = None,
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Send the conversation and return the complete response."""
        ...

    def stream(
        self,
        messages: list[Message],
        context: AIContext | None = None,
        options: ChatOptions | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Send the conversation and yield content deltas, then a terminal chunk."""
        ...

    async def complete(self, prompt: str, options: ChatOptions | None = None) -> str:
        """One-message chat call returning only the text."""
        ...

    async def analyze(self, content: str, kind: AnalysisKind) -> Analysis:
        """Run a note analysis and return the matching closed variant."""
        ...

    def estimate_usage(self, prompt_tokens: int, completion_tokens: int) -> Usage:
        """Price a token count with this backend's catalog rate."""
        ...

    async def check_connection(self) -> ConnectionStatus:
        """Check the backend is reachable; never raises for backend failures."""
        ...

    async def aclose(self) -> None:
        """Release HTTP resources."""
        ...


# Builds a provider for one exchange: (provider config, model id) -> provider
ProviderFactory = Callable[["ProviderConfig", str], AsyncProvider]


class FileOperationExecutor(Protocol):
    """Applies a user-approved structured intent.

    File storage lives outside notechat; the caller supplies an executor
    and the orchestrator only ever hands it intents the user approved.
    """

    def apply(self, intent: StructuredIntent) -> Awaitable[None]: ...
