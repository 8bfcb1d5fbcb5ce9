"""Tests for the key-value storage backends."""

import os
import stat
import sys
from pathlib import Path

import pytest

from notechat.session.storage import JsonFileStore, MemoryStore


class TestMemoryStore:
    def test_get_set_delete(self) -> None:
        store = MemoryStore({"a": "1"})

        assert store.get("a") == "1"
        store.set("b", "2")
        store.delete("a")
        store.delete("never-set")

        assert store.get("a") is None
        assert store.get("b") == "2"


class TestJsonFileStore:
    def test_missing_key(self, tmp_path: Path) -> None:
        assert JsonFileStore(tmp_path / "store").get("notechat-ai-sessions") is None

    def test_set_creates_directory(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path / "store")

        store.set("notechat-ai-sessions", "[]")

        assert (tmp_path / "store" / "notechat-ai-sessions.json").read_text() == "[]"
        assert store.get("notechat-ai-sessions") == "[]"

    def test_unsafe_key_characters_replaced(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path)

        store.set("../escape/key", "v")

        assert (tmp_path / ".._escape_key.json").exists()
        assert store.get("../escape/key") == "v"

    def test_empty_key_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            JsonFileStore(tmp_path).get("")

    def test_delete(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path)
        store.set("k", "v")

        store.delete("k")
        store.delete("k")

        assert store.get("k") is None

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_files_are_private(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path / "store")
        store.set("k", "secret")

        assert stat.S_IMODE(os.stat(tmp_path / "store" / "k.json").st_mode) == 0o600
        assert stat.S_IMODE(os.stat(tmp_path / "store").st_mode) == 0o700

    def test_invalid_utf8_replaced(self, tmp_path: Path) -> None:
        store = JsonFileStore(tmp_path)
        (tmp_path / "k.json").write_bytes(b"ok\xff")

        assert store.get("k") == "ok\ufffd"
