"""Session state shared by the store and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from notechat.core.constants import DEFAULT_SESSION_TITLE, SESSION_TITLE_MAX_CHARS
from notechat.core.types import Message, Role, Usage, utc_now


@dataclass
class Session:
    """A conversation: ordered messages plus running totals.

    Sessions are created lazily on the first user message and only ever
    removed by an explicit delete.

    Attributes:
        id: Unique session identifier.
        title: Display title, derived from the first message.
        messages: Conversation, oldest first.
        created_at: Creation time.
        updated_at: Last modification time.
        total_tokens: Tokens used across all exchanges.
        total_cost: Estimated spend in USD across all exchanges.
    """

    id: str
    title: str = DEFAULT_SESSION_TITLE
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    total_tokens: int = 0
    total_cost: float = 0.0

    @property
    def has_title(self) -> bool:
        return self.title != DEFAULT_SESSION_TITLE

    def last_message(self, role: Role | None = None) -> Message | None:
        for message in reversed(self.messages):
            if role is None or message.role == role:
                return message
        return None

    def append(self, message: Message) -> None:
        self.messages.append(message)
        self.touch()

    def replace_message(self, message: Message) -> None:
        """Swap the stored message with the same id for message."""
        for index, existing in enumerate(self.messages):
            if existing.id == message.id:
                self.messages[index] = message
                self.touch()
                return
        raise KeyError(message.id)

    def record_usage(self, usage: Usage) -> None:
        self.total_tokens += usage.total_tokens
        self.total_cost += usage.estimated_cost

    def derive_title(self, text: str) -> None:
        """Set the title from the first message if it still has the default."""
        if self.has_title:
            return
        title = text[:SESSION_TITLE_MAX_CHARS].rstrip()
        if title:
            self.title = title

    def touch(self) -> None:
        self.updated_at = utc_now()
