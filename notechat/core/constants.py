"""Core constants and paths for notechat.

Single source of truth for global paths and persisted-store keys.
"""

from pathlib import Path

NOTECHAT_DIR_NAME = ".notechat"

# Well-known keys in the client-side key-value store
SESSIONS_KEY = "notechat-ai-sessions"
SETTINGS_KEY = "notechat-ai-settings"

DEFAULT_SESSION_TITLE = "New Conversation"
SESSION_TITLE_MAX_CHARS = 50


def get_notechat_dir() -> Path:
    """Get ~/.notechat (global config directory)."""
    return Path.home() / NOTECHAT_DIR_NAME


def get_store_dir() -> Path:
    """Get the key-value store directory."""
    return get_notechat_dir() / "store"


def get_default_config_path() -> Path:
    """Get default config file path."""
    return get_notechat_dir() / "config.json"


def get_log_dir() -> Path:
    """Get log file directory."""
    return get_notechat_dir() / "logs"
