"""Tests for SessionStore over a key-value store."""

import json
from datetime import datetime, timedelta, timezone

from notechat.core.constants import SESSIONS_KEY
from notechat.core.types import Message, Role
from notechat.session import Session, SessionStore
from notechat.session.storage import JsonFileStore, MemoryStore


def session_at(session_id: str, minutes_ago: int) -> Session:
    when = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    return Session(id=session_id, created_at=when, updated_at=when)


class TestSessionStore:
    def test_empty_store(self, session_store: SessionStore) -> None:
        assert session_store.list() == []
        assert session_store.get("missing") is None

    def test_upsert_and_get(self, session_store: SessionStore) -> None:
        session = Session(id="s1", title="Hello")
        session.append(Message(id="m1", role=Role.USER, content="Hello"))

        session_store.upsert(session)

        loaded = session_store.get("s1")
        assert loaded is not None
        assert loaded.title == "Hello"
        assert [m.content for m in loaded.messages] == ["Hello"]

    def test_blob_is_array_of_pairs(self, kv: MemoryStore, session_store: SessionStore) -> None:
        session_store.upsert(Session(id="s1"))

        blob = json.loads(kv.get(SESSIONS_KEY))

        assert isinstance(blob, list)
        assert blob[0][0] == "s1"
        assert blob[0][1]["id"] == "s1"

    def test_upsert_replaces(self, session_store: SessionStore) -> None:
        session_store.upsert(Session(id="s1", title="Old"))
        session_store.upsert(Session(id="s1", title="New"))

        assert [s.title for s in session_store.list()] == ["New"]

    def test_list_most_recent_first(self, session_store: SessionStore) -> None:
        session_store.upsert(session_at("old", 30))
        session_store.upsert(session_at("new", 1))
        session_store.upsert(session_at("mid", 10))

        assert [s.id for s in session_store.list()] == ["new", "mid", "old"]

    def test_delete(self, session_store: SessionStore) -> None:
        session_store.upsert(Session(id="s1"))

        assert session_store.delete("s1") is True
        assert session_store.delete("s1") is False
        assert session_store.get("s1") is None

    def test_corrupted_blob_reads_as_empty(self) -> None:
        store = SessionStore(MemoryStore({SESSIONS_KEY: "{definitely not json"}))
        assert store.list() == []

    def test_unexpected_shape_reads_as_empty(self) -> None:
        store = SessionStore(MemoryStore({SESSIONS_KEY: json.dumps({"s1": {}})}))
        assert store.list() == []

    def test_malformed_entries_skipped(self, kv: MemoryStore) -> None:
        good = SessionStore(MemoryStore())
        good.upsert(Session(id="ok"))
        valid_entry = json.loads(good._kv.get(SESSIONS_KEY))[0]
        kv.set(
            SESSIONS_KEY,
            json.dumps(["junk", ["bad", {}], ["x", "not a dict"], [1, 2, 3], valid_entry]),
        )

        sessions = SessionStore(kv).list()

        assert [s.id for s in sessions] == ["ok"]

    def test_corrupted_blob_is_replaced_on_write(self) -> None:
        kv = MemoryStore({SESSIONS_KEY: "garbage"})
        store = SessionStore(kv)

        store.upsert(Session(id="fresh"))

        assert [s.id for s in store.list()] == ["fresh"]

    def test_undecodable_file_reads_as_empty(self, tmp_path) -> None:
        kv = JsonFileStore(tmp_path)
        kv.set(SESSIONS_KEY, "[]")
        (tmp_path / f"{SESSIONS_KEY}.json").write_bytes(b"\xff\xfe\x00garbage")
        store = SessionStore(kv)

        assert store.list() == []
        store.upsert(Session(id="fresh"))
        assert [s.id for s in store.list()] == ["fresh"]

    def test_unreadable_store_reads_as_empty(self) -> None:
        class BrokenStore(MemoryStore):
            def get(self, key: str) -> str | None:
                raise PermissionError("denied")

        assert SessionStore(BrokenStore()).list() == []
