"""Local Ollama server provider for notechat.

Uses the native chat API rather than the OpenAI shim:

- Endpoint: /api/chat
- Auth: none
- Streaming: newline-delimited JSON, last object has ``"done": true``
- Usage: ``prompt_eval_count`` / ``eval_count`` on the final object
"""

from __future__ import annotations

import logging
from typing import Any

from notechat.core.types import ChatOptions, Message
from notechat.provider.base import BaseProvider
from notechat.stream.decoder import StreamUnit

logger = logging.getLogger(__name__)


class OllamaProvider(BaseProvider):
    """Provider for a local Ollama server.

    Backend options (``num_ctx``, ``top_k``, ...) from the provider config
    are merged into the request ``options`` object.
    """

    def _build_endpoint(self, model_id: str, stream: bool = False) -> str:
        return f"{self._base_url}/api/chat"

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
        return {
            "model": model_id,
            "messages": wire,
            "stream": stream,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.max_tokens,
                **self._config.options,
            },
        }

    def _parse_response(self, data: dict[str, Any]) -> tuple[str, int | None, int | None]:
        content = data["message"].get("content") or ""
        return content, data.get("prompt_eval_count"), data.get("eval_count")

    def _extract_stream_unit(self, data: dict[str, Any]) -> StreamUnit:
        if data.get("error"):
            raise self._stream_error(data["error"])
        message = data.get("message") or {}
        done = bool(data.get("done"))
        return StreamUnit(
            delta=message.get("content") or "",
            done=done,
            prompt_tokens=data.get("prompt_eval_count") if done else None,
            completion_tokens=data.get("eval_count") if done else None,
        )

    def _models_endpoint(self) -> str:
        return f"{self._base_url}/api/tags"

    def _parse_model_names(self, data: dict[str, Any]) -> list[str]:
        models = data.get("models") or []
        return [m["name"] for m in models if isinstance(m, dict) and "name" in m]
