"""Results returned by the orchestrator for one exchange."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from notechat.core.errors import AIError
from notechat.core.types import Message, Usage
from notechat.intent.types import StructuredIntent


@dataclass(frozen=True)
class MessageOutcome:
    """The assistant replied (possibly partially, if stopped)."""

    session_id: str
    message: Message
    usage: Usage
    stopped: bool = False
    kind: Literal["message"] = "message"


@dataclass(frozen=True)
class IntentOutcome:
    """A file-operation intent awaits the user's approval."""

    session_id: str
    intent: StructuredIntent
    kind: Literal["intent"] = "intent"


@dataclass(frozen=True)
class ErrorOutcome:
    """The call failed; session_id is None only for calls outside any session (analyze)."""

    session_id: str | None
    error: AIError
    kind: Literal["error"] = "error"


ChatOutcome = MessageOutcome | IntentOutcome | ErrorOutcome
