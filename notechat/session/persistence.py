"""Session persistence: serialization and deserialization of sessions.

Converts Session/Message objects to and from JSON-serializable dicts.
Timestamps are stored as ISO 8601 strings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from notechat.core.constants import DEFAULT_SESSION_TITLE
from notechat.core.types import Message, Role
from notechat.session.types import Session

# Schema version for future migrations
SESSION_SCHEMA_VERSION = 1


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_message(msg: Message) -> dict[str, Any]:
    """Serialize a Message to a dictionary.

    Optional fields are omitted when unset.
    """
    data: dict[str, Any] = {
        "id": msg.id,
        "role": msg.role.value,
        "content": msg.content,
        "timestamp": msg.timestamp.isoformat(),
    }
    if msg.token_count is not None:
        data["token_count"] = msg.token_count
    if msg.model_id is not None:
        data["model_id"] = msg.model_id
    if msg.context_snapshot is not None:
        data["context_snapshot"] = msg.context_snapshot
    if msg.stopped_by_user:
        data["stopped_by_user"] = True
    return data


def deserialize_message(data: dict[str, Any]) -> Message:
    """Deserialize a Message from a dictionary.

    Raises:
        KeyError, ValueError, TypeError: If required fields are missing or invalid.
    """
    return Message(
        id=data["id"],
        role=Role(data["role"]),
        content=data.get("content", ""),
        timestamp=_parse_time(data["timestamp"]),
        token_count=data.get("token_count"),
        model_id=data.get("model_id"),
        context_snapshot=data.get("context_snapshot"),
        stopped_by_user=bool(data.get("stopped_by_user", False)),
    )


def serialize_session(session: Session) -> dict[str, Any]:
    """Serialize a Session to a dictionary."""
    return {
        "schema_version": SESSION_SCHEMA_VERSION,
        "id": session.id,
        "title": session.title,
        "messages": [serialize_message(msg) for msg in session.messages],
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
        "total_tokens": session.total_tokens,
        "total_cost": session.total_cost,
    }


def deserialize_session(data: dict[str, Any]) -> Session:
    """Deserialize a Session from a dictionary.

    Raises:
        KeyError, ValueError, TypeError: If the entry is malformed.
    """
    return Session(
        id=data["id"],
        title=data.get("title") or DEFAULT_SESSION_TITLE,
        messages=[deserialize_message(msg) for msg in data.get("messages", [])],
        created_at=_parse_time(data["created_at"]),
        updated_at=_parse_time(data["updated_at"]),
        total_tokens=int(data.get("total_tokens", 0)),
        total_cost=float(data.get("total_cost", 0.0)),
    )
