"""Static catalog of supported backends and their models.

Prices are USD per 1000 input tokens; ``output_cost_multiplier`` scales the
rate for completion tokens. Entries can be overridden per model through
``ProviderConfig.models``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notechat.config.schema import ModelConfig

DEFAULT_CAPABILITIES = ("chat", "completion", "analysis", "summarization")
DEFAULT_CONTEXT_WINDOW = 4096


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    name: str
    context_window: int
    cost_per_1k_tokens: float = 0.0
    output_cost_multiplier: float = 1.0
    capabilities: tuple[str, ...] = DEFAULT_CAPABILITIES

    def estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        rate = self.cost_per_1k_tokens / 1000
        return prompt_tokens * rate + completion_tokens * rate * self.output_cost_multiplier

    def with_overrides(self, override: ModelConfig) -> ModelDescriptor:
        changes = {
            key: value
            for key, value in override.model_dump(exclude_none=True).items()
            if key != "capabilities"
        }
        if override.capabilities is not None:
            changes["capabilities"] = tuple(override.capabilities)
        return replace(self, **changes)


@dataclass(frozen=True)
class ProviderDescriptor:
    """Read-only catalog entry for a backend.

    Attributes:
        id: Provider type.
        name: Display name.
        api_key_required: Whether a credential must be configured.
        intent_detection: Whether the backend needs the client-side
            file-operation intent pass before ordinary chat.
        models: Known models.
    """

    id: str
    name: str
    api_key_required: bool
    intent_detection: bool
    models: tuple[ModelDescriptor, ...]

    def find_model(self, model_id: str) -> ModelDescriptor | None:
        for model in self.models:
            if model.id == model_id:
                return model
        return None

    def resolve_model(
        self,
        model_id: str,
        overrides: dict[str, ModelConfig] | None = None,
    ) -> ModelDescriptor:
        """Descriptor for model_id, falling back to an estimate for unknown models."""
        model = self.find_model(model_id)
        if model is None:
            model = ModelDescriptor(
                id=model_id,
                name=model_id,
                context_window=estimate_context_window(model_id),
            )
        if overrides and model_id in overrides:
            model = model.with_overrides(overrides[model_id])
        return model


def estimate_context_window(model_id: str) -> int:
    """Guess a context window from a local model's family name."""
    name = model_id.lower()
    if "codellama" in name:
        return 16384
    if any(family in name for family in ("llama3", "llama-3", "mistral", "gemma")):
        return 8192
    return DEFAULT_CONTEXT_WINDOW


def _openai_model(model_id: str, name: str, window: int, cost: float) -> ModelDescriptor:
    # Completion tokens are priced at roughly twice the input rate
    return ModelDescriptor(model_id, name, window, cost, output_cost_multiplier=2.0)


CATALOG: dict[str, ProviderDescriptor] = {
    "openai": ProviderDescriptor(
        id="openai",
        name="OpenAI",
        api_key_required=True,
        intent_detection=False,
        models=(
            _openai_model("gpt-4o", "GPT-4o", 128000, 0.0025),
            _openai_model("gpt-4o-mini", "GPT-4o Mini", 128000, 0.00015),
            _openai_model("gpt-4-turbo", "GPT-4 Turbo", 128000, 0.01),
            _openai_model("gpt-4", "GPT-4", 8192, 0.03),
            _openai_model("gpt-3.5-turbo", "GPT-3.5 Turbo", 16385, 0.0005),
        ),
    ),
    "openrouter": ProviderDescriptor(
        id="openrouter",
        name="OpenRouter",
        api_key_required=True,
        intent_detection=False,
        models=(),
    ),
    "anthropic": ProviderDescriptor(
        id="anthropic",
        name="Anthropic",
        api_key_required=True,
        intent_detection=False,
        models=(
            ModelDescriptor("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", 200000, 0.003),
            ModelDescriptor("claude-3-opus-20240229", "Claude 3 Opus", 200000, 0.015),
            ModelDescriptor("claude-3-sonnet-20240229", "Claude 3 Sonnet", 200000, 0.003),
            ModelDescriptor("claude-3-haiku-20240307", "Claude 3 Haiku", 200000, 0.00025),
        ),
    ),
    "gemini": ProviderDescriptor(
        id="gemini",
        name="Google Gemini",
        api_key_required=True,
        intent_detection=False,
        models=(
            ModelDescriptor("gemini-1.5-pro", "Gemini 1.5 Pro", 1000000, 0.00125),
            ModelDescriptor("gemini-1.5-flash", "Gemini 1.5 Flash", 1000000, 0.000075),
            ModelDescriptor("gemini-pro", "Gemini Pro", 32768, 0.0005),
        ),
    ),
    "ollama": ProviderDescriptor(
        id="ollama",
        name="Ollama (Local)",
        api_key_required=False,
        intent_detection=True,
        models=(
            ModelDescriptor("llama3.2", "Llama 3.2", 8192),
            ModelDescriptor("mistral", "Mistral", 8192),
            ModelDescriptor("codellama", "Code Llama", 16384),
            ModelDescriptor("phi3", "Phi-3", 4096),
        ),
    ),
}


def get_descriptor(provider_type: str) -> ProviderDescriptor:
    """Catalog entry for a provider type.

    Raises:
        KeyError: If the type is not in the catalog.
    """
    return CATALOG[provider_type]
