"""Tests for OpenAICompatProvider wire format (OpenAI and OpenRouter)."""

import httpx
import pytest

from notechat.core.errors import ProviderError
from notechat.core.types import ChatOptions, Message, Role
from notechat.provider import default_provider_config
from notechat.provider.openai_compat import OpenAICompatProvider


def make(provider_type: str = "openai", model: str = "gpt-4o-mini", **overrides: object):
    config = default_provider_config(provider_type)
    assert config is not None
    return OpenAICompatProvider(config.model_copy(update=overrides), model)


class TestOpenAIRequestFormat:
    def test_endpoint(self, api_keys: None) -> None:
        assert make()._build_endpoint("gpt-4o") == "https://api.openai.com/v1/chat/completions"

    def test_openrouter_endpoint_and_key(self, api_keys: None) -> None:
        provider = make("openrouter", "anthropic/claude-3.5-sonnet")

        assert provider._build_endpoint("x") == "https://openrouter.ai/api/v1/chat/completions"
        assert provider._build_headers()["Authorization"] == "Bearer test-openrouter-key"
        assert provider.provider_id == "openrouter"

    def test_unknown_openrouter_model_gets_estimated_window(self, api_keys: None) -> None:
        provider = make("openrouter", "anthropic/claude-3.5-sonnet")
        assert provider.model.context_window == 4096

    def test_config_options_merged_into_body(self, api_keys: None) -> None:
        provider = make(options={"top_p": 0.9})

        body = provider._build_request_body(
            "sys", [], ChatOptions(temperature=0.1, max_tokens=5), "gpt-4o", stream=False
        )

        assert body["top_p"] == 0.9
        assert body["messages"] == [{"role": "system", "content": "sys"}]
        assert "stream_options" not in body


class TestOpenAIParsing:
    def test_parse_response(self, api_keys: None) -> None:
        content, prompt, completion = make()._parse_response(
            {
                "choices": [{"message": {"role": "assistant", "content": "Hello"}}],
                "usage": {"prompt_tokens": 3, "completion_tokens": 1},
            }
        )
        assert (content, prompt, completion) == ("Hello", 3, 1)

    def test_null_content_is_empty(self, api_keys: None) -> None:
        content, _, _ = make()._parse_response({"choices": [{"message": {"content": None}}]})
        assert content == ""

    def test_stream_unit_delta(self, api_keys: None) -> None:
        unit = make()._extract_stream_unit({"choices": [{"delta": {"content": "Hi"}}]})
        assert unit.delta == "Hi"
        assert unit.done is False

    def test_stream_unit_role_only_delta(self, api_keys: None) -> None:
        unit = make()._extract_stream_unit({"choices": [{"delta": {"role": "assistant"}}]})
        assert unit.delta == ""

    def test_stream_unit_usage(self, api_keys: None) -> None:
        unit = make()._extract_stream_unit(
            {"choices": [], "usage": {"prompt_tokens": 9, "completion_tokens": 4}}
        )
        assert unit.prompt_tokens == 9
        assert unit.completion_tokens == 4

    def test_stream_error_object_raises(self, api_keys: None) -> None:
        with pytest.raises(ProviderError, match="Rate limit reached"):
            make()._extract_stream_unit(
                {"error": {"message": "Rate limit reached", "code": "rate_limit_exceeded"}}
            )


class TestOpenAIRoundTrip:
    @pytest.mark.asyncio
    async def test_history_order(self, api_keys: None, mock_http) -> None:
        provider = make()
        transport = mock_http(
            provider,
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]}),
        )
        history = [
            Message(id="1", role=Role.USER, content="one"),
            Message(id="2", role=Role.ASSISTANT, content="two"),
            Message(id="3", role=Role.USER, content="three"),
        ]

        await provider.chat(history)

        wire = transport.body()["messages"][1:]
        assert [(m["role"], m["content"]) for m in wire] == [
            ("user", "one"),
            ("assistant", "two"),
            ("user", "three"),
        ]
        assert str(transport.last.url) == "https://api.openai.com/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_check_connection_lists_models(self, api_keys: None, mock_http) -> None:
        provider = make()
        transport = mock_http(
            provider,
            lambda request: httpx.Response(
                200, json={"object": "list", "data": [{"id": "gpt-4o"}, {"id": "gpt-4o-mini"}]}
            ),
        )

        status = await provider.check_connection()

        assert status.connected is True
        assert status.models == ("gpt-4o", "gpt-4o-mini")
        assert str(transport.last.url) == "https://api.openai.com/v1/models"
        assert transport.last.headers["Authorization"] == "Bearer test-openai-key"
