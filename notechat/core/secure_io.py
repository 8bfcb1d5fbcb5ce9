"""Secure file I/O utilities for notechat.

Atomic, owner-only writes for persisted sessions and settings. A blob is
either fully replaced or left untouched, never partially written.
"""

import os
import stat
from pathlib import Path

# Owner-only directories
SECURE_DIR_MODE: int = stat.S_IRWXU  # 0o700

# Owner read/write only
SECURE_FILE_MODE: int = stat.S_IRUSR | stat.S_IWUSR  # 0o600


def secure_mkdir(path: Path) -> None:
    """Create directory (and parents) and ensure it is owner-only.

    Args:
        path: Directory path to create.
    """
    path.mkdir(mode=SECURE_DIR_MODE, parents=True, exist_ok=True)
    # Re-apply in case umask interfered or the directory already existed
    os.chmod(path, SECURE_DIR_MODE)


def secure_write_atomic(path: Path, content: str | bytes) -> None:
    """Atomically write a file with secure permissions.

    Writes to a sibling temp file, fsyncs, then renames over the target
    with os.replace(), so readers observe either the old or the new
    content.

    Args:
        path: Path to the file to write.
        content: Content to write (str or bytes).
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        fd = os.open(
            str(temp_path),
            os.O_CREAT | os.O_TRUNC | os.O_WRONLY,
            SECURE_FILE_MODE,
        )
        try:
            os.write(fd, content)
            os.fsync(fd)
        finally:
            os.close(fd)

        os.replace(temp_path, path)

        # Some filesystems do not preserve mode across replace
        os.chmod(path, SECURE_FILE_MODE)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
