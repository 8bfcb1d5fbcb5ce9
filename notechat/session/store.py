"""Session map persisted as one blob in a key-value store.

The blob is a JSON array of ``[id, session]`` pairs under ``SESSIONS_KEY``.
Every write replaces the whole blob.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from notechat.core.constants import SESSIONS_KEY
from notechat.session.persistence import deserialize_session, serialize_session

if TYPE_CHECKING:
    from notechat.session.storage import KeyValueStore
    from notechat.session.types import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """CRUD over the persisted session map.

    An absent or corrupted blob reads as an empty map; malformed entries
    are skipped. Both cases are logged and never raised to the caller.
    """

    def __init__(self, kv: KeyValueStore, key: str = SESSIONS_KEY) -> None:
        self._kv = kv
        self._key = key

    def _load(self) -> dict[str, Session]:
        try:
            raw = self._kv.get(self._key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Session store is unreadable, treating as empty: %s", e)
            return {}
        if raw is None:
            return {}

        try:
            entries: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Session store is corrupted, treating as empty: %s", e)
            return {}
        if not isinstance(entries, list):
            logger.warning(
                "Session store has unexpected shape (%s), treating as empty",
                type(entries).__name__,
            )
            return {}

        sessions: dict[str, Session] = {}
        for entry in entries:
            try:
                session_id, data = entry
                session = deserialize_session(data)
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping malformed session entry: %s", e)
                continue
            sessions[str(session_id)] = session
        return sessions

    def _save(self, sessions: dict[str, Session]) -> None:
        blob = [[session_id, serialize_session(s)] for session_id, s in sessions.items()]
        self._kv.set(self._key, json.dumps(blob, ensure_ascii=False))

    def get(self, session_id: str) -> Session | None:
        return self._load().get(session_id)

    def list(self) -> list[Session]:
        """All sessions, most recently updated first."""
        return sorted(self._load().values(), key=lambda s: s.updated_at, reverse=True)

    def upsert(self, session: Session) -> None:
        sessions = self._load()
        sessions[session.id] = session
        self._save(sessions)

    def delete(self, session_id: str) -> bool:
        """Remove a session. Returns False if it did not exist."""
        sessions = self._load()
        if sessions.pop(session_id, None) is None:
            return False
        self._save(sessions)
        return True
