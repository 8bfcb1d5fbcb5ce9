"""Core types for notechat.

This module defines the fundamental data structures shared by the provider,
context and session layers: messages, stream chunks, usage records and the
note context handed in by the caller. All dataclasses are frozen for
immutability.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Role(Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A message in a conversation.

    Attributes:
        id: Unique message identifier.
        role: The role of the message sender.
        content: The text content of the message.
        timestamp: Creation time.
        token_count: Estimated or reported token count.
        model_id: Model that produced the message (assistant messages).
        context_snapshot: Summary of the note context used for the exchange.
        stopped_by_user: True when generation was cancelled mid-stream.
    """

    id: str
    role: Role
    content: str
    timestamp: datetime = field(default_factory=utc_now)
    token_count: int | None = None
    model_id: str | None = None
    context_snapshot: dict[str, Any] | None = None
    stopped_by_user: bool = False

    def with_continuation(self, suffix: str) -> "Message":
        """Return a copy with suffix appended to the content."""
        return replace(self, content=self.content + suffix, stopped_by_user=False)


@dataclass(frozen=True)
class Usage:
    """Token usage and cost for one exchange."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    estimated_cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class ConnectionStatus:
    """Result of a connection check against a backend's model listing."""

    connected: bool
    models: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class StreamChunk:
    """An incremental piece of a streamed response.

    Attributes:
        content: Text delta (empty on the terminal chunk).
        done: True on the terminal chunk.
        tokens_so_far: Aggregated token count, set on the terminal chunk.
        usage: Usage with cost, attached by the provider to the terminal chunk.
    """

    content: str
    done: bool = False
    tokens_so_far: int | None = None
    usage: Usage | None = None


@dataclass(frozen=True)
class ChatOptions:
    """Per-call options for a provider chat call."""

    model_id: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool = False


@dataclass(frozen=True)
class ChatResponse:
    """A complete (non-streamed or drained) provider response."""

    id: str
    content: str
    model_id: str
    usage: Usage
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class NoteExcerpt:
    """A note (or part of one) supplied as context."""

    id: str
    title: str
    content: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class SearchResult:
    """A search hit supplied as context."""

    note_id: str
    title: str
    snippet: str
    score: float = 0.0


@dataclass(frozen=True)
class NoteContext:
    """Note context handed in by the caller for one exchange.

    Note storage and retrieval live outside notechat; the caller resolves
    the current note, related notes and search hits and passes them here.
    """

    current_note: NoteExcerpt | None = None
    related_notes: tuple[NoteExcerpt, ...] = ()
    search_results: tuple[SearchResult, ...] = ()


@dataclass(frozen=True)
class AIContext:
    """Budgeted context injected into the system preamble by providers."""

    current_note: NoteExcerpt | None = None
    related_notes: tuple[NoteExcerpt, ...] = ()
    search_results: tuple[SearchResult, ...] = ()
    extra_instructions: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return (
            self.current_note is None
            and not self.related_notes
            and not self.search_results
            and not self.extra_instructions
        )

    def snapshot(self) -> dict[str, Any]:
        """Compact, serializable summary stored on assistant messages."""
        return {
            "current_note": self.current_note.id if self.current_note else None,
            "related_notes": [note.id for note in self.related_notes],
            "search_results": [hit.note_id for hit in self.search_results],
        }
