"""Anthropic Claude API provider for notechat.

The native Messages API differs from the OpenAI format:

- Endpoint: /v1/messages
- Auth: x-api-key header + anthropic-version header
- System prompt: top-level ``system`` field, not a message
- Response: list of content blocks
- Streaming: typed events (message_start, content_block_delta,
  message_delta, message_stop)
"""

from __future__ import annotations

import logging
from typing import Any

from notechat.core.types import ChatOptions, Message
from notechat.provider.base import BaseProvider
from notechat.stream.decoder import StreamUnit

logger = logging.getLogger(__name__)

# Anthropic API version header
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(BaseProvider):
    """Provider for the native Anthropic Claude API.

    Configuration:
        - type: "anthropic"
        - base_url: https://api.anthropic.com (default)
        - api_key_env: ANTHROPIC_API_KEY
        - auth_method: x-api-key
    """

    def _build_headers(self) -> dict[str, str]:
        headers = super()._build_headers()
        headers["anthropic-version"] = ANTHROPIC_VERSION
        return headers

    def _build_endpoint(self, model_id: str, stream: bool = False) -> str:
        return f"{self._base_url}/v1/messages"

    def _models_endpoint(self) -> str:
        return f"{self._base_url}/v1/models"

    def _build_request_body(
        self,
        system: str,
        messages: list[Message],
        options: ChatOptions,
        model_id: str,
        stream: bool,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model_id,
            "messages": self._convert_messages(messages),
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        if system:
            body["system"] = system
        if stream:
            body["stream"] = True
        body.update(self._config.options)
        return body

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert to Anthropic messages, merging consecutive same-role turns.

        The API requires strictly alternating user/assistant roles.
        """
        result: list[dict[str, Any]] = []
        for message in messages:
            role = message.role.value
            if result and result[-1]["role"] == role:
                result[-1]["content"] += "\n\n" + message.content
            else:
                result.append({"role": role, "content": message.content})
        # A trailing assistant turn is a prefill and must not end in whitespace
        if result and result[-1]["role"] == "assistant":
            result[-1]["content"] = result[-1]["content"].rstrip()
        return result

    def _parse_response(self, data: dict[str, Any]) -> tuple[str, int | None, int | None]:
        blocks = data["content"]
        content = "".join(
            block.get("text", "") for block in blocks if block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return content, usage.get("input_tokens"), usage.get("output_tokens")

    def _extract_stream_unit(self, data: dict[str, Any]) -> StreamUnit:
        event_type = data.get("type")

        if event_type == "content_block_delta":
            delta = data.get("delta") or {}
            if delta.get("type") == "text_delta":
                return StreamUnit(delta=delta.get("text", ""))
            return StreamUnit()

        if event_type == "message_start":
            usage = (data.get("message") or {}).get("usage") or {}
            return StreamUnit(
                prompt_tokens=usage.get("input_tokens"),
                completion_tokens=usage.get("output_tokens"),
            )

        if event_type == "message_delta":
            usage = data.get("usage") or {}
            return StreamUnit(completion_tokens=usage.get("output_tokens"))

        if event_type == "message_stop":
            return StreamUnit(done=True)

        if event_type == "error":
            raise self._stream_error(data.get("error") or "unknown stream error")

        # ping, content_block_start, content_block_stop
        return StreamUnit()
