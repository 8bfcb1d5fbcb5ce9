"""Configuration loading and validation."""

from notechat.config.loader import load_config
from notechat.config.schema import (
    AuthMethod,
    BudgetConfig,
    Config,
    ModelConfig,
    ProviderConfig,
)
from notechat.config.store import SettingsStore

__all__ = [
    "AuthMethod",
    "BudgetConfig",
    "Config",
    "ModelConfig",
    "ProviderConfig",
    "SettingsStore",
    "load_config",
]
