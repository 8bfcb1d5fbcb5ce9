"""Configuration loading with fail-fast behavior.

An explicit path must exist and validate. Without one, the global
``~/.notechat/config.json`` is used when present; otherwise built-in
defaults apply.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from notechat.config.load_utils import load_json_file, load_json_file_optional
from notechat.config.schema import Config
from notechat.core.constants import get_default_config_path
from notechat.core.errors import ConfigError, LoadError

logger = logging.getLogger(__name__)


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a JSON file.

    Args:
        path: Explicit config file path. If None, the global config is used
            when it exists.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file is missing (explicit path only), contains
            invalid JSON, or fails validation.
    """
    try:
        if path is not None:
            data = load_json_file(path, "config")
            source = path
        else:
            source = get_default_config_path()
            data = load_json_file_optional(source, "config")
            if data is None:
                logger.debug("No global config at %s, using defaults", source)
                return Config()
    except LoadError as e:
        raise ConfigError(e.message) from e

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed for {source}:\n{e}") from e

    logger.debug("Loaded config from %s", source)
    return config
