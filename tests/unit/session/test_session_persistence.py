"""Tests for session serialization."""

import json
from datetime import datetime, timezone

import pytest

from notechat.core.types import Message, Role
from notechat.session import Session
from notechat.session.persistence import (
    SESSION_SCHEMA_VERSION,
    deserialize_message,
    deserialize_session,
    serialize_message,
    serialize_session,
)

WHEN = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


class TestSerializeMessage:
    def test_minimal_message_omits_optionals(self) -> None:
        data = serialize_message(Message(id="m1", role=Role.USER, content="hi", timestamp=WHEN))

        assert data == {
            "id": "m1",
            "role": "user",
            "content": "hi",
            "timestamp": "2024-05-01T12:30:00+00:00",
        }

    def test_full_assistant_message(self) -> None:
        message = Message(
            id="m2",
            role=Role.ASSISTANT,
            content="partial",
            timestamp=WHEN,
            token_count=2,
            model_id="llama3.2",
            context_snapshot={"current_note": "n1", "related_notes": [], "search_results": []},
            stopped_by_user=True,
        )

        data = serialize_message(message)

        assert data["stopped_by_user"] is True
        assert data["model_id"] == "llama3.2"
        assert deserialize_message(json.loads(json.dumps(data))) == message


class TestDeserializeMessage:
    def test_naive_timestamp_is_utc(self) -> None:
        message = deserialize_message(
            {"id": "m1", "role": "assistant", "content": "x", "timestamp": "2024-05-01T12:30:00"}
        )
        assert message.timestamp == WHEN
        assert message.stopped_by_user is False

    @pytest.mark.parametrize(
        "data",
        [
            {"role": "user", "timestamp": "2024-05-01T12:30:00"},
            {"id": "m1", "role": "robot", "timestamp": "2024-05-01T12:30:00"},
            {"id": "m1", "role": "user", "timestamp": "yesterday"},
        ],
    )
    def test_malformed(self, data: dict) -> None:
        with pytest.raises((KeyError, ValueError)):
            deserialize_message(data)


class TestSessionRoundTrip:
    def test_round_trip(self) -> None:
        session = Session(
            id="session_1",
            title="Garden plans",
            messages=[
                Message(id="m1", role=Role.USER, content="What should I plant?", timestamp=WHEN),
                Message(id="m2", role=Role.ASSISTANT, content="Tomatoes.", timestamp=WHEN),
            ],
            created_at=WHEN,
            updated_at=WHEN,
            total_tokens=42,
            total_cost=0.0012,
        )

        data = json.loads(json.dumps(serialize_session(session)))

        assert data["schema_version"] == SESSION_SCHEMA_VERSION
        assert deserialize_session(data) == session

    def test_missing_title_defaults(self) -> None:
        session = deserialize_session(
            {
                "id": "s1",
                "title": "",
                "created_at": WHEN.isoformat(),
                "updated_at": WHEN.isoformat(),
            }
        )
        assert session.title == "New Conversation"
        assert session.messages == []
