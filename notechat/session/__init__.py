"""Sessions, their persistence, and the conversation orchestrator."""

from notechat.session.orchestrator import ConversationOrchestrator
from notechat.session.outcomes import ChatOutcome, ErrorOutcome, IntentOutcome, MessageOutcome
from notechat.session.persistence import (
    deserialize_message,
    deserialize_session,
    serialize_message,
    serialize_session,
)
from notechat.session.storage import JsonFileStore, KeyValueStore, MemoryStore
from notechat.session.store import SessionStore
from notechat.session.types import Session

__all__ = [
    "ConversationOrchestrator",
    # Outcomes
    "ChatOutcome",
    "ErrorOutcome",
    "IntentOutcome",
    "MessageOutcome",
    # Persistence
    "deserialize_message",
    "deserialize_session",
    "serialize_message",
    "serialize_session",
    # Storage
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "SessionStore",
    "Session",
]
