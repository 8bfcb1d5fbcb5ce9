"""Client-side key-value storage backends.

Sessions and settings each live under one well-known key. ``JsonFileStore``
keeps one file per key in a private directory; ``MemoryStore`` is for tests
and embedding.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

from notechat.core.secure_io import secure_mkdir, secure_write_atomic

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueStore(Protocol):
    """Minimal string key-value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-memory store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """One file per key under a directory.

    The directory is created with owner-only permissions on first write.
    Every write replaces the file atomically, so a crash mid-write leaves
    the previous value intact.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not key:
            raise ValueError("Store key cannot be empty")
        return self._directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> str | None:
        """Stored text, or None if absent. Invalid UTF-8 is replaced, not raised."""
        path = self._path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        return data.decode("utf-8", errors="replace")

    def set(self, key: str, value: str) -> None:
        secure_mkdir(self._directory)
        secure_write_atomic(self._path(key), value)
        logger.debug("Wrote %s (%d chars)", key, len(value))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
