"""Applies approved file operations to a local notes folder."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notechat.intent.types import FileOperation, StructuredIntent

logger = logging.getLogger(__name__)


class NotesDirectoryExecutor:
    """FileOperationExecutor rooted at a notes directory.

    Paths are resolved relative to the root and must stay inside it.
    Operations run in order; the first failure stops the rest.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, relative: str) -> Path:
        """Absolute path for a note path.

        Raises:
            ValueError: If the path escapes the notes directory.
        """
        target = (self._root / relative).resolve()
        if target != self._root and self._root not in target.parents:
            raise ValueError(f"Path escapes notes directory: {relative}")
        return target

    async def apply(self, intent: StructuredIntent) -> None:
        for operation in intent.operations:
            self._apply_one(operation)

    def _apply_one(self, operation: FileOperation) -> None:
        target = self.resolve(operation.path)
        match operation.type:
            case "create":
                if target.exists():
                    raise FileExistsError(f"Note already exists: {operation.path}")
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(operation.content or "", encoding="utf-8")
            case "modify":
                if not target.is_file():
                    raise FileNotFoundError(f"Note not found: {operation.path}")
                target.write_text(operation.content or "", encoding="utf-8")
            case "delete":
                if target.is_dir():
                    shutil.rmtree(target)
                else:
                    target.unlink()
            case "create-folder":
                target.mkdir(parents=True, exist_ok=True)
        logger.info("Applied %s %s", operation.type, operation.path)
