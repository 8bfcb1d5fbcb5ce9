"""Tests for the character-based token estimator."""

from notechat.context import SimpleTokenCounter, get_token_counter
from notechat.core.types import Message, Role


class TestSimpleTokenCounter:
    def test_empty_is_zero(self) -> None:
        assert SimpleTokenCounter().count("") == 0

    def test_rounds_up(self) -> None:
        counter = SimpleTokenCounter()
        assert counter.count("a") == 1
        assert counter.count("abcd") == 1
        assert counter.count("abcde") == 2

    def test_monotone_over_prefixes(self) -> None:
        counter = SimpleTokenCounter()
        text = "The quick brown fox jumps over the lazy dog" * 3
        counts = [counter.count(text[:i]) for i in range(len(text) + 1)]
        assert counts == sorted(counts)

    def test_count_messages_adds_overhead(self) -> None:
        counter = SimpleTokenCounter()
        messages = [
            Message(id="1", role=Role.USER, content="abcd"),
            Message(id="2", role=Role.ASSISTANT, content="abcdefgh"),
        ]
        assert counter.count_messages(messages) == (1 + 4) + (2 + 4)

    def test_shared_default(self) -> None:
        assert get_token_counter() is get_token_counter()
