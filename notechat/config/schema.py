"""Pydantic models for notechat configuration validation."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Supported provider types
ProviderType = Literal["openai", "openrouter", "anthropic", "gemini", "ollama"]


class AuthMethod(str, Enum):
    """Authentication method for API requests."""

    BEARER = "bearer"  # Authorization: Bearer <key>
    X_API_KEY = "x-api-key"  # x-api-key: <key> header (Anthropic)
    GOOG_API_KEY = "x-goog-api-key"  # x-goog-api-key: <key> header (Gemini)
    NONE = "none"  # No auth (local Ollama)


class ModelConfig(BaseModel):
    """Per-model overrides layered on top of the static catalog.

    Example in config.json:
        "providers": {
            "ollama": {
                "models": {
                    "qwen2.5-coder": {"context_window": 32768}
                }
            }
        }
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    """Display name."""

    context_window: int | None = Field(default=None, gt=0)
    """Context window size in tokens."""

    cost_per_1k_tokens: float | None = Field(default=None, ge=0)
    """Price per 1000 input tokens in USD."""

    output_cost_multiplier: float | None = Field(default=None, ge=0)
    """Output tokens cost this many times the input rate."""

    capabilities: list[str] | None = None
    """Capability tags (chat, streaming, analysis, ...)."""


class ProviderConfig(BaseModel):
    """Configuration for an LLM backend.

    Provider types:
        - openai: Direct OpenAI API
        - openrouter: OpenRouter.ai (OpenAI-compatible)
        - anthropic: Anthropic Claude API
        - gemini: Google Gemini API
        - ollama: Local Ollama server
    """

    model_config = ConfigDict(extra="forbid")

    type: ProviderType = "openai"
    """Provider type: openai, openrouter, anthropic, gemini, ollama."""

    api_key: str | None = None
    """Stored credential. Takes precedence over api_key_env."""

    api_key_env: str = "OPENAI_API_KEY"
    """Environment variable containing the API key."""

    base_url: str = "https://api.openai.com/v1"
    """Base URL for API requests."""

    auth_method: AuthMethod = AuthMethod.BEARER
    """How to send the API key."""

    extra_headers: dict[str, str] = {}
    """Additional headers to include in API requests."""

    request_timeout: float = Field(default=120.0, gt=0)
    """Timeout in seconds for API requests."""

    allow_insecure_http: bool = False
    """Allow plain HTTP to non-loopback hosts (development only)."""

    verify_ssl: bool = True
    """Verify TLS certificates."""

    ssl_ca_cert: str | None = None
    """Path to a custom CA bundle."""

    options: dict[str, Any] = {}
    """Backend-specific request options (e.g. Ollama num_ctx, top_k)."""

    models: dict[str, ModelConfig] = {}
    """Per-model overrides keyed by model id."""


class BudgetConfig(BaseModel):
    """How the input context budget is partitioned.

    The current-note category receives whatever the history and search
    shares leave over, including rounding remainders.
    """

    model_config = ConfigDict(extra="forbid")

    history_ratio: float = Field(default=0.3, ge=0, lt=1)
    """Share of the input budget for conversation history."""

    search_ratio: float = Field(default=0.2, ge=0, lt=1)
    """Share of the input budget for search results."""

    history_keep_count: int = Field(default=10, ge=0)
    """Maximum number of recent messages sent as history."""

    @model_validator(mode="after")
    def validate_ratios(self) -> "BudgetConfig":
        """Ensure the current note keeps a non-empty share."""
        if self.history_ratio + self.search_ratio >= 1:
            raise ValueError(
                "history_ratio + search_ratio must be below 1 "
                f"(got {self.history_ratio + self.search_ratio})"
            )
        return self


class Config(BaseModel):
    """Root configuration model (also the persisted settings object).

    Example config.json:
        {
            "provider": "anthropic",
            "model": "claude-3-5-sonnet-20241022",
            "enable_streaming": true,
            "providers": {
                "anthropic": {"api_key_env": "MY_ANTHROPIC_KEY"}
            }
        }
    """

    model_config = ConfigDict(extra="forbid")

    provider: str = "openai"
    """Selected backend name (a key of providers, or a provider type)."""

    model: str = "gpt-3.5-turbo"
    """Default model id for the selected backend."""

    max_tokens: int = Field(default=1000, gt=0)
    """Output allowance reserved from the model's context window."""

    temperature: float = Field(default=0.7, ge=0, le=2)

    enable_streaming: bool = False
    """Stream responses by default."""

    enable_context: bool = True
    """Inject note context into the system preamble."""

    max_context_notes: int = Field(default=5, ge=0)
    """Maximum related notes included in the context."""

    intent_detection: bool | None = None
    """Run the file-operation intent pass. None defers to the backend catalog."""

    monthly_limit: float = Field(default=10.0, ge=0)
    """Informational monthly spend limit in USD."""

    budget: BudgetConfig = BudgetConfig()

    providers: dict[str, ProviderConfig] = {}
    """Provider overrides. Unlisted provider types use built-in defaults."""

    @field_validator("providers", mode="before")
    @classmethod
    def apply_provider_defaults(cls, value: Any) -> Any:
        """Fill omitted provider fields from the defaults of its type.

        An entry keyed by a provider type may omit ``type`` entirely, so
        ``{"anthropic": {"api_key_env": "MY_KEY"}}`` keeps Anthropic's base
        URL and auth method.
        """
        from notechat.provider import PROVIDER_DEFAULTS

        if not isinstance(value, dict):
            return value
        result: dict[str, Any] = {}
        for name, raw in value.items():
            if isinstance(raw, dict):
                provider_type = raw.get("type", name)
                if provider_type in PROVIDER_DEFAULTS:
                    raw = {**PROVIDER_DEFAULTS[provider_type], "type": provider_type, **raw}
            result[name] = raw
        return result

    def get_provider_config(self, name: str | None = None) -> ProviderConfig:
        """Get provider configuration by name.

        Explicit entries in ``providers`` win; otherwise a known provider type
        resolves to its built-in defaults.

        Args:
            name: Provider name. Defaults to the selected provider.

        Returns:
            ProviderConfig for the named provider.

        Raises:
            KeyError: If provider name is neither configured nor a known type.
        """
        from notechat.provider import default_provider_config

        name = name or self.provider
        if name in self.providers:
            return self.providers[name]
        config = default_provider_config(name)
        if config is None:
            raise KeyError(f"Unknown provider: {name}")
        return config

    def list_providers(self) -> list[str]:
        """List configured provider names followed by built-in types."""
        from notechat.provider import PROVIDER_DEFAULTS

        names = list(self.providers)
        names.extend(p for p in PROVIDER_DEFAULTS if p not in self.providers)
        return names
