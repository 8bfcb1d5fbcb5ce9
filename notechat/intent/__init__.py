"""File-operation intent detection and the malformed-JSON repair parser."""

from notechat.intent.detection import build_intent_prompt, looks_like_file_request
from notechat.intent.repair import parse_intent_response, repair_json
from notechat.intent.types import (
    ClarificationNeeded,
    FileOperation,
    IntentDetected,
    IntentParseResult,
    NoOperation,
    ParseFailed,
    StructuredIntent,
)

__all__ = [
    "ClarificationNeeded",
    "FileOperation",
    "IntentDetected",
    "IntentParseResult",
    "NoOperation",
    "ParseFailed",
    "StructuredIntent",
    "build_intent_prompt",
    "looks_like_file_request",
    "parse_intent_response",
    "repair_json",
]
