"""Google Gemini API provider for notechat.

- Endpoint: models/{model}:generateContent, or
  models/{model}:streamGenerateContent?alt=sse when streaming
- Auth: x-goog-api-key header
- Messages: ``contents`` with ``parts``; the assistant role is "model"
- System prompt: ``systemInstruction``
- Usage: ``usageMetadata`` (cumulative on streamed chunks)
"""

from __future__ import annotations

from typing import Any

from notechat.core.types import ChatOptions, Message, Role
from notechat.provider.base import BaseProvider
from notechat.stream.decoder import StreamUnit


def _candidate_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


class GeminiProvider(BaseProvider):
    """Provider for the Google Gemini generateContent API."""

    def _build_endpoint(self, model_id: str, stream: bool = False) -> str:
        if stream:
            return f"{self._base_url}/models/{model_id}:streamGenerateContent?alt=sse"
        return f"{self._base_url}/models/{model_id}:generateContent"

    def _parse_model_names(self, data: dict[str, Any]) -> list[str]:
        # names come back as "models/gemini-1.5-pro"
        models = data.get("models") or []
        return [
            m["name"].removeprefix("models/")
            for m in models
            if isinstance(m, dict) and "name" in m
        ]

    def _build_request_body(
        self,
        system: str,
        messages: list[Message],
        options: ChatOptions,
        model_id: str,
        stream: bool,
    ) -> dict[str, Any]:
        contents = [
            {
                "role": "model" if m.role == Role.ASSISTANT else "user",
                "parts": [{"text": m.content}],
            }
            for m in messages
        ]
        body: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": options.temperature,
                "maxOutputTokens": options.max_tokens,
                **self._config.options,
            },
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}
        return body

    def _parse_response(self, data: dict[str, Any]) -> tuple[str, int | None, int | None]:
        if "candidates" not in data:
            raise KeyError("candidates")
        usage = data.get("usageMetadata") or {}
        return (
            _candidate_text(data),
            usage.get("promptTokenCount"),
            usage.get("candidatesTokenCount"),
        )

    def _extract_stream_unit(self, data: dict[str, Any]) -> StreamUnit:
        if data.get("error"):
            raise self._stream_error(data["error"])
        usage = data.get("usageMetadata") or {}
        return StreamUnit(
            delta=_candidate_text(data),
            prompt_tokens=usage.get("promptTokenCount"),
            completion_tokens=usage.get("candidatesTokenCount"),
        )
