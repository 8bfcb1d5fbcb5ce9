"""LLM provider implementations for notechat.

This module provides the factory function for creating providers based on
configuration, plus provider defaults for each supported provider type.

Supported providers:
- openai: Direct OpenAI API (default)
- openrouter: OpenRouter.ai
- anthropic: Anthropic Claude API
- gemini: Google Gemini API
- ollama: Local Ollama server

Example:
    from notechat.provider import create_provider
    from notechat.config.schema import ProviderConfig

    config = ProviderConfig(type="anthropic")
    provider = create_provider(config, "claude-3-5-sonnet-20241022")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notechat.core.errors import ConfigError

if TYPE_CHECKING:
    from notechat.config.schema import ProviderConfig
    from notechat.context.token_counter import TokenCounter
    from notechat.core.interfaces import AsyncProvider


# Provider type defaults - used by the config schema and the factory
PROVIDER_DEFAULTS: dict[str, dict[str, str]] = {
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
        "auth_method": "bearer",
    },
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "api_key_env": "OPENROUTER_API_KEY",
        "auth_method": "bearer",
    },
    "anthropic": {
        "base_url": "https://api.anthropic.com",
        "api_key_env": "ANTHROPIC_API_KEY",
        "auth_method": "x-api-key",
    },
    "gemini": {
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
        "api_key_env": "GEMINI_API_KEY",
        "auth_method": "x-goog-api-key",
    },
    "ollama": {
        "base_url": "http://localhost:11434",
        "api_key_env": "",
        "auth_method": "none",
    },
}


def default_provider_config(name: str) -> ProviderConfig | None:
    """Built-in configuration for a provider type, or None if unknown."""
    from notechat.config.schema import ProviderConfig

    defaults = PROVIDER_DEFAULTS.get(name)
    if defaults is None:
        return None
    return ProviderConfig.model_validate({"type": name, **defaults})


def create_provider(
    config: ProviderConfig,
    model_id: str,
    counter: TokenCounter | None = None,
) -> AsyncProvider:
    """Create a provider instance based on config.type.

    Args:
        config: Provider configuration. The 'type' field selects the class.
        model_id: The model ID to use for API requests.
        counter: Token counter for usage estimates.

    Returns:
        A provider implementing the AsyncProvider protocol.

    Raises:
        ConfigError: If provider type is unknown.
        ConfigurationMissingError: If a required credential is absent.
    """
    provider_type = config.type

    if provider_type in ("openai", "openrouter"):
        from notechat.provider.openai_compat import OpenAICompatProvider

        return OpenAICompatProvider(config, model_id, counter)

    if provider_type == "anthropic":
        from notechat.provider.anthropic import AnthropicProvider

        return AnthropicProvider(config, model_id, counter)

    if provider_type == "gemini":
        from notechat.provider.gemini import GeminiProvider

        return GeminiProvider(config, model_id, counter)

    if provider_type == "ollama":
        from notechat.provider.ollama import OllamaProvider

        return OllamaProvider(config, model_id, counter)

    raise ConfigError(
        f"Unknown provider type: {provider_type}. "
        f"Supported types: {', '.join(PROVIDER_DEFAULTS)}"
    )


__all__ = [
    "PROVIDER_DEFAULTS",
    "create_provider",
    "default_provider_config",
]
