"""OpenAI-compatible provider for notechat.

Handles every backend that speaks the OpenAI chat completions API:
- OpenAI (api.openai.com)
- OpenRouter (openrouter.ai)

Streaming uses server-sent events terminated by ``data: [DONE]``. Usage
arrives on a final chunk with an empty ``choices`` list when
``stream_options.include_usage`` is requested.
"""

from __future__ import annotations

import logging
from typing import Any

from notechat.core.types import ChatOptions, Message
from notechat.provider.base import BaseProvider
from notechat.stream.decoder import StreamUnit

logger = logging.getLogger(__name__)


class OpenAICompatProvider(BaseProvider):
    """Provider for OpenAI-compatible chat completions APIs.

    Configuration:
        - type: "openai" or "openrouter"
        - base_url: API base including the version prefix (e.g. .../v1)
        - api_key_env: Environment variable with the key
        - auth_method: bearer

    Example:
        config = ProviderConfig(type="openai")
        provider = OpenAICompatProvider(config, "gpt-4o-mini")
        response = await provider.chat(messages)
    """

    def _build_endpoint(self, model_id: str, stream: bool = False) -> str:
        return f"{self._base_url}/chat/completions"

    def _build_request_body(
        self,
        system: str,
        messages: list[Message],
        options: ChatOptions,
        model_id: str,
        stream: bool,
    ) -> dict[str, Any]:
        wire: list[dict[str, Any]] = []
        if system:
            wire.append({"role": "system", "content": system})
        wire.extend({"role": m.role.value, "content": m.content} for m in messages)

        body: dict[str, Any] = {
            "model": model_id,
            "messages": wire,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "stream": stream,
        }
        if stream:
            body["stream_options"] = {"include_usage": True}
        body.update(self._config.options)
        return body

    def _parse_response(self, data: dict[str, Any]) -> tuple[str, int | None, int | None]:
        choices = data["choices"]
        if not choices:
            raise IndexError("response has no choices")
        content = choices[0]["message"].get("content") or ""
        usage = data.get("usage") or {}
        return content, usage.get("prompt_tokens"), usage.get("completion_tokens")

    def _extract_stream_unit(self, data: dict[str, Any]) -> StreamUnit:
        if data.get("error"):
            raise self._stream_error(data["error"])
        delta = ""
        choices = data.get("choices") or []
        if choices:
            delta = (choices[0].get("delta") or {}).get("content") or ""
        usage = data.get("usage") or {}
        return StreamUnit(
            delta=delta,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
