"""Tests for the mutable Session record."""

from datetime import datetime, timedelta, timezone

import pytest

from notechat.core.constants import DEFAULT_SESSION_TITLE
from notechat.core.types import Message, Role, Usage
from notechat.session import Session


def message(message_id: str, role: Role = Role.USER, content: str = "text") -> Message:
    return Message(id=message_id, role=role, content=content)


class TestSession:
    def test_defaults(self) -> None:
        session = Session(id="s1")

        assert session.title == DEFAULT_SESSION_TITLE
        assert session.has_title is False
        assert session.messages == []
        assert session.total_tokens == 0

    def test_append_touches(self) -> None:
        session = Session(id="s1", updated_at=datetime(2020, 1, 1, tzinfo=timezone.utc))

        session.append(message("m1"))

        assert len(session.messages) == 1
        assert session.updated_at > datetime.now(timezone.utc) - timedelta(minutes=1)

    def test_last_message_by_role(self) -> None:
        session = Session(id="s1")
        session.append(message("m1", Role.USER))
        session.append(message("m2", Role.ASSISTANT))
        session.append(message("m3", Role.USER))

        assert session.last_message().id == "m3"
        assert session.last_message(Role.ASSISTANT).id == "m2"
        assert Session(id="empty").last_message() is None

    def test_replace_message(self) -> None:
        session = Session(id="s1")
        session.append(message("m1", Role.ASSISTANT, "Hel"))

        session.replace_message(message("m1", Role.ASSISTANT, "Hello"))

        assert [m.content for m in session.messages] == ["Hello"]

    def test_replace_missing_message(self) -> None:
        with pytest.raises(KeyError):
            Session(id="s1").replace_message(message("nope"))

    def test_record_usage_accumulates(self) -> None:
        session = Session(id="s1")

        session.record_usage(Usage(10, 5, 0.01))
        session.record_usage(Usage(3, 2, 0.005))

        assert session.total_tokens == 20
        assert session.total_cost == pytest.approx(0.015)

    def test_derive_title_truncates_to_fifty(self) -> None:
        session = Session(id="s1")
        text = "x" * 49 + " tail that is cut off"

        session.derive_title(text)

        assert session.title == "x" * 49
        assert session.has_title

    def test_derive_title_only_once(self) -> None:
        session = Session(id="s1")
        session.derive_title("First question")
        session.derive_title("Second question")

        assert session.title == "First question"

    def test_blank_text_keeps_default(self) -> None:
        session = Session(id="s1")
        session.derive_title("   ")
        assert session.title == DEFAULT_SESSION_TITLE
