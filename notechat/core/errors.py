"""Typed exception hierarchy and the caller-facing error record for notechat."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorCode(str, Enum):
    """Error taxonomy surfaced to callers of the orchestrator."""

    CHAT_ERROR = "CHAT_ERROR"
    BUDGET_EXHAUSTED = "BUDGET_EXHAUSTED"
    PARSE_FAILED = "PARSE_FAILED"
    ABORTED = "ABORTED"
    CONFIGURATION_MISSING = "CONFIGURATION_MISSING"
    GENERATION_IN_PROGRESS = "GENERATION_IN_PROGRESS"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    NO_PENDING_INTENT = "NO_PENDING_INTENT"


@dataclass(frozen=True)
class AIError:
    """Uniform error shape returned to callers regardless of which component failed.

    Attributes:
        code: Error category.
        message: Human-readable message (backend message for CHAT_ERROR).
        timestamp: When the error was recorded.
        provider_id: Backend involved, if any.
    """

    code: ErrorCode
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    provider_id: str | None = None


class NotechatError(Exception):
    """Base class for all notechat errors."""

    code: ErrorCode = ErrorCode.CHAT_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_ai_error(self, provider_id: str | None = None) -> AIError:
        """Convert this exception into the caller-facing error record."""
        return AIError(code=self.code, message=self.message, provider_id=provider_id)


class ConfigError(NotechatError):
    """Raised for configuration issues (missing file, invalid JSON, validation failure)."""

    code = ErrorCode.CONFIGURATION_MISSING


class ConfigurationMissingError(ConfigError):
    """Raised when the selected backend requires a credential that is absent."""

    code = ErrorCode.CONFIGURATION_MISSING


class ProviderError(NotechatError):
    """Raised for LLM provider issues (HTTP errors, network issues, bad responses)."""

    code = ErrorCode.CHAT_ERROR

    def __init__(
        self,
        message: str,
        provider_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.provider_id = provider_id
        self.status_code = status_code
        super().__init__(message)

    def to_ai_error(self, provider_id: str | None = None) -> AIError:
        return AIError(
            code=self.code,
            message=self.message,
            provider_id=provider_id or self.provider_id,
        )


class BudgetExhaustedError(NotechatError):
    """Raised when the output reservation leaves no room for input context."""

    code = ErrorCode.BUDGET_EXHAUSTED


class LoadError(NotechatError):
    """Base class for loading errors (config files, persisted blobs)."""

    pass
