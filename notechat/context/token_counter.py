"""Token estimation for budgeting and usage fallbacks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from notechat.core.types import Message


class TokenCounter(Protocol):
    """Protocol for token counting implementations.

    Implementations must be monotone: a prefix of a text never counts more
    tokens than the text itself. Truncation relies on it.
    """

    def count(self, text: str) -> int:
        """Count tokens in a text string."""
        ...

    def count_messages(self, messages: list[Message]) -> int:
        """Count tokens in a list of messages."""
        ...


class SimpleTokenCounter:
    """Character-based token estimation.

    Uses the heuristic that ~4 characters = 1 token, rounded up, so any
    non-empty text counts at least one token. Deterministic and free of
    external dependencies.
    """

    CHARS_PER_TOKEN = 4
    OVERHEAD_PER_MESSAGE = 4  # Role, formatting overhead

    def count(self, text: str) -> int:
        """Count tokens using character-based estimation.

        Args:
            text: Text string to count tokens for.

        Returns:
            Estimated token count, 0 for empty text.
        """
        if not text:
            return 0
        return -(-len(text) // self.CHARS_PER_TOKEN)

    def count_messages(self, messages: list[Message]) -> int:
        """Count tokens in messages with overhead per message."""
        return sum(self.count(msg.content) + self.OVERHEAD_PER_MESSAGE for msg in messages)


_default_counter = SimpleTokenCounter()


def get_token_counter() -> TokenCounter:
    """Return the shared default counter."""
    return _default_counter
