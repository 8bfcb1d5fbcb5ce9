"""Tests for the static backend catalog and the provider factory."""

import pytest

from notechat.config.schema import ModelConfig, ProviderConfig
from notechat.core.errors import ConfigError, ConfigurationMissingError
from notechat.provider import PROVIDER_DEFAULTS, create_provider, default_provider_config
from notechat.provider.anthropic import AnthropicProvider
from notechat.provider.catalog import CATALOG, estimate_context_window, get_descriptor
from notechat.provider.gemini import GeminiProvider
from notechat.provider.ollama import OllamaProvider
from notechat.provider.openai_compat import OpenAICompatProvider


class TestCatalog:
    def test_every_default_has_catalog_entry(self) -> None:
        assert set(PROVIDER_DEFAULTS) == set(CATALOG)

    def test_only_local_backend_skips_key_and_needs_intent_pass(self) -> None:
        for provider_id, descriptor in CATALOG.items():
            assert descriptor.api_key_required is (provider_id != "ollama")
            assert descriptor.intent_detection is (provider_id == "ollama")

    def test_find_model(self) -> None:
        model = get_descriptor("openai").find_model("gpt-4")
        assert model is not None
        assert model.context_window == 8192

    def test_unknown_type(self) -> None:
        with pytest.raises(KeyError):
            get_descriptor("bogus")

    @pytest.mark.parametrize(
        ("model_id", "window"),
        [("codellama:13b", 16384), ("llama3:8b", 8192), ("mistral-nemo", 8192), ("qwen2", 4096)],
    )
    def test_estimated_windows(self, model_id: str, window: int) -> None:
        assert estimate_context_window(model_id) == window

    def test_overrides_apply(self) -> None:
        model = get_descriptor("ollama").resolve_model(
            "qwen2.5-coder", {"qwen2.5-coder": ModelConfig(context_window=32768, name="Qwen")}
        )
        assert model.context_window == 32768
        assert model.name == "Qwen"

    def test_cost_estimate(self) -> None:
        model = get_descriptor("anthropic").find_model("claude-3-opus-20240229")
        assert model is not None
        assert model.estimate_cost(1000, 1000) == pytest.approx(0.03)


class TestCreateProvider:
    @pytest.mark.parametrize(
        ("provider_type", "model", "cls"),
        [
            ("openai", "gpt-4o", OpenAICompatProvider),
            ("openrouter", "meta-llama/llama-3-70b", OpenAICompatProvider),
            ("anthropic", "claude-3-haiku-20240307", AnthropicProvider),
            ("gemini", "gemini-1.5-pro", GeminiProvider),
            ("ollama", "llama3.2", OllamaProvider),
        ],
    )
    def test_dispatch(self, api_keys: None, provider_type: str, model: str, cls: type) -> None:
        config = default_provider_config(provider_type)
        assert config is not None

        provider = create_provider(config, model)

        assert isinstance(provider, cls)
        assert provider.model.id == model

    def test_unknown_type(self) -> None:
        config = ProviderConfig.model_construct(type="bogus")
        with pytest.raises(ConfigError, match="Unknown provider type"):
            create_provider(config, "x")

    def test_missing_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        config = default_provider_config("anthropic")
        assert config is not None

        with pytest.raises(ConfigurationMissingError):
            create_provider(config, "claude-3-haiku-20240307")

    def test_default_provider_config_unknown(self) -> None:
        assert default_provider_config("bogus") is None
