"""Tests for NotesDirectoryExecutor."""

from pathlib import Path

import pytest

from notechat.cli.executor import NotesDirectoryExecutor
from notechat.intent.types import StructuredIntent


def make_intent(*operations: dict) -> StructuredIntent:
    return StructuredIntent.model_validate({"operations": list(operations), "summary": "test"})


@pytest.fixture
def executor(tmp_path: Path) -> NotesDirectoryExecutor:
    return NotesDirectoryExecutor(tmp_path)


class TestResolve:
    def test_inside_root(self, executor, tmp_path: Path) -> None:
        assert executor.resolve("a/b.md") == tmp_path.resolve() / "a" / "b.md"

    def test_escape_rejected(self, executor) -> None:
        with pytest.raises(ValueError, match="escapes"):
            executor.resolve("../outside.md")


class TestApply:
    @pytest.mark.asyncio
    async def test_create_makes_parents(self, executor, tmp_path: Path) -> None:
        intent = make_intent({"type": "create", "path": "projects/plan", "content": "x"})

        await executor.apply(intent)

        assert (tmp_path / "projects" / "plan.md").read_text(encoding="utf-8") == "x"

    @pytest.mark.asyncio
    async def test_create_existing_fails(self, executor, tmp_path: Path) -> None:
        (tmp_path / "plan.md").write_text("old", encoding="utf-8")

        with pytest.raises(FileExistsError):
            await executor.apply(
                make_intent({"type": "create", "path": "plan.md", "content": "new"})
            )
        assert (tmp_path / "plan.md").read_text(encoding="utf-8") == "old"

    @pytest.mark.asyncio
    async def test_modify(self, executor, tmp_path: Path) -> None:
        (tmp_path / "plan.md").write_text("old", encoding="utf-8")

        await executor.apply(make_intent({"type": "modify", "path": "plan.md", "content": "new"}))

        assert (tmp_path / "plan.md").read_text(encoding="utf-8") == "new"

    @pytest.mark.asyncio
    async def test_modify_missing_fails(self, executor) -> None:
        with pytest.raises(FileNotFoundError):
            await executor.apply(make_intent({"type": "modify", "path": "absent.md"}))

    @pytest.mark.asyncio
    async def test_delete_file_and_folder(self, executor, tmp_path: Path) -> None:
        (tmp_path / "old.md").write_text("x", encoding="utf-8")
        (tmp_path / "archive").mkdir()
        (tmp_path / "archive" / "a.md").write_text("y", encoding="utf-8")

        await executor.apply(make_intent(
            {"type": "delete", "path": "old.md"},
            {"type": "delete", "path": "archive"},
        ))

        assert not (tmp_path / "old.md").exists()
        assert not (tmp_path / "archive").exists()

    @pytest.mark.asyncio
    async def test_create_folder(self, executor, tmp_path: Path) -> None:
        await executor.apply(make_intent({"type": "create-folder", "path": "inbox/later"}))

        assert (tmp_path / "inbox" / "later").is_dir()

    @pytest.mark.asyncio
    async def test_first_failure_stops_rest(self, executor, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            await executor.apply(make_intent(
                {"type": "modify", "path": "absent.md", "content": "x"},
                {"type": "create-folder", "path": "never"},
            ))

        assert not (tmp_path / "never").exists()
