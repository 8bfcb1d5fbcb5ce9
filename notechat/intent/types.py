"""Structured file-operation intents and the parser's result variants."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from notechat.core.errors import ErrorCode

FileOperationType = Literal["create", "modify", "delete", "create-folder"]

DEFAULT_INTENT_SUMMARY = "File operations requested"
DEFAULT_CLARIFICATION = "Could you clarify which files or notes you mean?"


class FileOperation(BaseModel):
    """One proposed change to the note store."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: FileOperationType
    path: str = Field(min_length=1)
    content: str | None = None
    reason: str = ""

    @model_validator(mode="before")
    @classmethod
    def ensure_markdown_extension(cls, data: Any) -> Any:
        """Notes are markdown files; created notes get the .md suffix."""
        if isinstance(data, dict) and data.get("type") == "create":
            path = data.get("path")
            if isinstance(path, str) and path.strip() and not path.strip().lower().endswith(".md"):
                data = {**data, "path": path.strip() + ".md"}
        return data

    @field_validator("path")
    @classmethod
    def normalize_path(cls, value: str) -> str:
        """Keep paths relative to the notes root."""
        path = value.strip().replace("\\", "/").lstrip("/")
        if not path:
            raise ValueError("path is empty")
        if any(part == ".." for part in path.split("/")):
            raise ValueError(f"path escapes the notes root: {value!r}")
        return path

    @field_validator("reason", mode="before")
    @classmethod
    def default_reason(cls, value: Any) -> Any:
        return "" if value is None else value


class StructuredIntent(BaseModel):
    """A user-approvable set of file operations extracted from model output.

    Never acted on without explicit approval; ``requires_approval`` is
    always True.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    operations: tuple[FileOperation, ...] = Field(min_length=1)
    summary: str = DEFAULT_INTENT_SUMMARY

    @field_validator("summary", mode="before")
    @classmethod
    def default_summary(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_INTENT_SUMMARY
        return value

    @property
    def requires_approval(self) -> bool:
        return True


@dataclass(frozen=True)
class IntentDetected:
    intent: StructuredIntent
    data: dict[str, Any]
    kind: Literal["intent"] = "intent"


@dataclass(frozen=True)
class ClarificationNeeded:
    question: str
    data: dict[str, Any]
    kind: Literal["clarification"] = "clarification"


@dataclass(frozen=True)
class NoOperation:
    data: dict[str, Any]
    kind: Literal["none"] = "none"


@dataclass(frozen=True)
class ParseFailed:
    """The response could not be turned into any known shape."""

    reason: str
    text: str
    kind: Literal["parse_failed"] = "parse_failed"

    @property
    def code(self) -> ErrorCode:
        return ErrorCode.PARSE_FAILED


IntentParseResult = IntentDetected | ClarificationNeeded | NoOperation | ParseFailed
