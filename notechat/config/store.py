"""Settings persistence in the client-side key-value store.

Settings are one serialized ``Config`` object under ``SETTINGS_KEY``.
Saved values are deep-merged over the defaults on load, so settings
written by an older version pick up new fields.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from notechat.config.load_utils import parse_json_object
from notechat.config.schema import Config
from notechat.core.constants import SETTINGS_KEY
from notechat.core.errors import ConfigError, LoadError
from notechat.core.utils import deep_merge

if TYPE_CHECKING:
    from notechat.session.storage import KeyValueStore

logger = logging.getLogger(__name__)


class SettingsStore:
    """Load and save ``Config`` under the well-known settings key.

    ``defaults`` supplies the base that saved values are merged over; it
    can read a config file so saved settings layer on top of it.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        key: str = SETTINGS_KEY,
        defaults: Callable[[], Config] = Config,
    ) -> None:
        self._kv = kv
        self._key = key
        self._defaults = defaults

    def exists(self) -> bool:
        return self._kv.get(self._key) is not None

    def load(self) -> Config:
        """Load saved settings merged over defaults.

        An absent or corrupted blob yields the defaults. Saved values that
        fail validation are discarded with a warning.
        """
        raw = self._kv.get(self._key)
        if raw is None:
            return self._defaults()

        try:
            saved = parse_json_object(raw, self._key, "settings")
        except LoadError as e:
            logger.warning("Ignoring corrupted settings: %s", e.message)
            return self._defaults()

        defaults = self._defaults()
        try:
            return Config.model_validate(deep_merge(defaults.model_dump(mode="json"), saved))
        except ValidationError as e:
            logger.warning("Ignoring invalid settings: %s", e)
            return defaults

    def save(self, config: Config) -> None:
        """Persist settings as a single object."""
        self._kv.set(self._key, config.model_dump_json(exclude_none=False))

    def update(self, changes: dict[str, Any]) -> Config:
        """Apply changes (nested dicts allowed), validate and persist.

        Raises:
            ConfigError: If the resulting settings fail validation.
        """
        current = self.load().model_dump(mode="json")
        try:
            config = Config.model_validate(deep_merge(current, changes))
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e
        self.save(config)
        return config

    def reset(self) -> None:
        """Remove saved settings."""
        self._kv.delete(self._key)

    def __call__(self) -> Config:
        return self.load()


def parse_setting_value(value: str) -> Any:
    """Interpret a command-line value as JSON, falling back to a plain string."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value
