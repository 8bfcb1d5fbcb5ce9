"""Extracts, repairs and parses near-JSON model output into intents.

Weak local models routinely wrap their JSON in prose or code fences, put
raw newlines inside string values, and stop before the closing braces.
The pipeline, in order:

1. strip markdown fences
2. keep the span from the first ``{`` to the last ``}``
3. strict parse (fast path for well-formed input)
4. escape raw control characters inside string values
5. close an unterminated string and every unclosed ``{``/``[``
6. drop trailing commas, fill dangling ``"key":`` with null, and turn
   stray carriage returns outside strings into newlines
7. strict parse, then shape validation

``parse_intent_response`` never raises; every failure is a ``ParseFailed``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from notechat.intent.types import (
    DEFAULT_CLARIFICATION,
    ClarificationNeeded,
    IntentDetected,
    IntentParseResult,
    NoOperation,
    ParseFailed,
    StructuredIntent,
)

logger = logging.getLogger(__name__)

_FENCE = "```"
_CONTROL_ESCAPES = {"\n": "n", "\r": "r", "\t": "t", "\b": "b", "\f": "f"}
_CLOSERS = {"{": "}", "[": "]"}
_TRUTHY = (True, "true", "True")


def strip_fences(text: str) -> str:
    """Remove a leading ```lang line and a trailing ``` marker."""
    text = text.strip()
    if text.startswith(_FENCE):
        newline = text.find("\n")
        text = text[newline + 1:] if newline >= 0 else text[len(_FENCE):]
    if text.endswith(_FENCE):
        text = text[: -len(_FENCE)]
    return text.strip()


def slice_object(text: str) -> str | None:
    """Span from the first ``{`` to the last ``}`` (or to the end if none follows)."""
    start = text.find("{")
    if start < 0:
        return None
    end = text.rfind("}")
    if end < start:
        return text[start:]
    return text[start:end + 1]


def _escape_control(ch: str) -> str:
    letter = _CONTROL_ESCAPES.get(ch)
    return letter if letter is not None else f"u{ord(ch):04x}"


def escape_control_chars(text: str) -> str:
    """Escape raw control characters that appear inside string values.

    Characters outside strings pass through unchanged. A backslash
    directly followed by a raw control character becomes the matching
    escape sequence.
    """
    out: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
                out.append(_escape_control(ch) if ch < " " else ch)
                continue
            if ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch < " ":
                out.append("\\" + _escape_control(ch))
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


def close_structure(text: str) -> str:
    """Close an unterminated string and append closers for unclosed containers."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in "}]" and stack and stack[-1] == ch:
            stack.pop()

    if in_string:
        if escaped:
            text = text[:-1]
        text += '"'
    return text + "".join(reversed(stack))


def clean_separators(text: str) -> str:
    """Drop trailing commas, fill dangling values, normalize stray CRs.

    Only characters outside string values are touched.
    """
    out: list[str] = []
    in_string = False
    escaped = False
    last_significant = ""
    length = len(text)
    for index, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            out.append(ch)
            continue

        if ch == '"':
            in_string = True
        elif ch == "\r":
            if index + 1 < length and text[index + 1] == "\n":
                continue
            ch = "\n"
        elif ch == ",":
            ahead = index + 1
            while ahead < length and text[ahead].isspace():
                ahead += 1
            if ahead < length and text[ahead] in "}]":
                continue
        elif ch in "}]" and last_significant == ":":
            out.append("null")

        out.append(ch)
        if not ch.isspace():
            last_significant = ch
    return "".join(out)


def repair_json(text: str) -> str:
    """Apply the repair steps to an object span. The result may still be invalid."""
    repaired = clean_separators(close_structure(escape_control_chars(text)))
    if repaired != text:
        logger.debug("Applied JSON repairs (%d -> %d chars)", len(text), len(repaired))
    return repaired


def _loads(text: str) -> tuple[Any, str | None]:
    try:
        return json.loads(text), None
    except (json.JSONDecodeError, RecursionError) as e:
        return None, str(e)


def interpret(data: dict[str, Any]) -> IntentParseResult:
    """Validate a parsed object against the known intent shapes."""
    if data.get("needsClarification") in _TRUTHY:
        question = data.get("question")
        if not isinstance(question, str) or not question.strip():
            question = DEFAULT_CLARIFICATION
        return ClarificationNeeded(question=question, data=data)

    if data.get("hasOperations") not in _TRUTHY or not data.get("operations"):
        return NoOperation(data=data)

    try:
        intent = StructuredIntent.model_validate(data)
    except ValidationError as e:
        return ParseFailed(reason=f"invalid intent shape: {e}", text=json.dumps(data))
    return IntentDetected(intent=intent, data=data)


def parse_intent_response(raw: str | None) -> IntentParseResult:
    """Turn raw model output into an intent result. Never raises.

    Args:
        raw: Text that should contain one JSON object.

    Returns:
        IntentDetected, ClarificationNeeded, NoOperation, or ParseFailed.
    """
    raw = raw or ""
    candidate = slice_object(strip_fences(raw))
    if candidate is None:
        return ParseFailed(reason="no JSON object found", text=raw)

    data, error = _loads(candidate)
    if error is not None:
        data, error = _loads(repair_json(candidate))
        if error is not None:
            logger.debug("Intent JSON unrecoverable: %s", error)
            return ParseFailed(reason=f"invalid JSON after repair: {error}", text=raw)

    if not isinstance(data, dict):
        return ParseFailed(reason=f"expected object, got {type(data).__name__}", text=raw)
    return interpret(data)
