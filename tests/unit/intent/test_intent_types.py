"""Tests for FileOperation / StructuredIntent validation and the detection prompt."""

import pytest
from pydantic import ValidationError

from notechat.intent import (
    FileOperation,
    StructuredIntent,
    build_intent_prompt,
    looks_like_file_request,
)
from notechat.intent.types import DEFAULT_INTENT_SUMMARY


class TestFileOperation:
    def test_create_gets_markdown_extension(self) -> None:
        assert FileOperation(type="create", path="ideas").path == "ideas.md"
        assert FileOperation(type="create", path="ideas.MD").path == "ideas.MD"

    def test_other_types_keep_path(self) -> None:
        assert FileOperation(type="create-folder", path="projects").path == "projects"
        assert FileOperation(type="modify", path="todo.txt").path == "todo.txt"

    def test_paths_are_made_relative(self) -> None:
        assert FileOperation(type="delete", path="/abs/note.md").path == "abs/note.md"
        assert FileOperation(type="delete", path="dir\\note.md").path == "dir/note.md"

    @pytest.mark.parametrize("path", ["", "   ", "../up.md", "a/../../b.md"])
    def test_invalid_paths(self, path: str) -> None:
        with pytest.raises(ValidationError):
            FileOperation(type="delete", path=path)

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            FileOperation(type="rename", path="a.md")  # type: ignore[arg-type]

    def test_null_reason(self) -> None:
        operation = FileOperation.model_validate({"type": "delete", "path": "a.md", "reason": None})
        assert operation.reason == ""


class TestStructuredIntent:
    def test_requires_approval(self) -> None:
        intent = StructuredIntent(operations=(FileOperation(type="delete", path="a.md"),))
        assert intent.requires_approval is True
        assert intent.summary == DEFAULT_INTENT_SUMMARY

    def test_blank_summary_defaults(self) -> None:
        intent = StructuredIntent.model_validate(
            {"operations": [{"type": "delete", "path": "a.md"}], "summary": "  "}
        )
        assert intent.summary == DEFAULT_INTENT_SUMMARY

    def test_needs_operations(self) -> None:
        with pytest.raises(ValidationError):
            StructuredIntent(operations=())


class TestDetectionPrompt:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Create a note about my trip", True),
            ("Please ORGANIZE my folder", True),
            ("Delete that file", True),
            ("What is the capital of France?", False),
        ],
    )
    def test_prefilter(self, message: str, expected: bool) -> None:
        assert looks_like_file_request(message) is expected

    def test_prompt_includes_message_and_notes(self) -> None:
        prompt = build_intent_prompt('Make a "todo" note', ["inbox.md", "work/plan.md"])

        assert 'User Request: "Make a \\"todo\\" note"' in prompt
        assert "- inbox.md\n- work/plan.md" in prompt
        assert '"hasOperations": true' in prompt

    def test_prompt_without_notes(self) -> None:
        assert "(none provided)" in build_intent_prompt("create a file")
