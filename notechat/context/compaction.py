"""Conversation-history compaction to a bounded recent window."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from notechat.context.token_counter import get_token_counter

if TYPE_CHECKING:
    from notechat.context.token_counter import TokenCounter
    from notechat.core.types import Message


def truncate_to_tokens(text: str, budget: int, counter: TokenCounter | None = None) -> str:
    """Trim text from the end until it fits within budget tokens.

    Binary search over the prefix length, so it holds for any monotone
    counter. The head of the text is always kept.
    """
    counter = counter or get_token_counter()
    if budget <= 0:
        return ""
    if counter.count(text) <= budget:
        return text

    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if counter.count(text[:mid]) <= budget:
            lo = mid
        else:
            hi = mid - 1
    return text[:lo]


def compact_history(
    messages: list[Message],
    keep_count: int,
    per_message_token_budget: int,
    counter: TokenCounter | None = None,
) -> list[Message]:
    """Reduce history to the most recent messages, each within a token budget.

    Lossy and best-effort: never fails, only degrades fidelity.

    Args:
        messages: Full history, oldest first.
        keep_count: Maximum number of messages to keep.
        per_message_token_budget: Maximum estimated tokens per message.
        counter: Token counter (defaults to the character heuristic).

    Returns:
        At most ``keep_count`` messages in original order, each truncated
        from the end to fit the budget.
    """
    counter = counter or get_token_counter()
    if keep_count <= 0:
        return []

    compacted = []
    for message in messages[-keep_count:]:
        content = truncate_to_tokens(message.content, per_message_token_budget, counter)
        if content != message.content:
            message = replace(message, content=content)
        compacted.append(message)
    return compacted


def per_message_budget(history_budget: int, keep_count: int) -> int:
    """Evenly divide the history budget across the kept messages."""
    if keep_count <= 0:
        return 0
    return max(history_budget, 0) // keep_count
