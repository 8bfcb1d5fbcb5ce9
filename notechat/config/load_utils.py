"""JSON loading utility for config files and persisted blobs.

Use:
- load_json_file() for required files (raises LoadError if not found)
- load_json_file_optional() for optional config (returns None if not found)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from notechat.core.errors import LoadError

logger = logging.getLogger(__name__)


def parse_json_object(content: str, source: str, error_context: str = "") -> dict[str, Any]:
    """Parse text that must hold a JSON object.

    Args:
        content: Raw JSON text. Blank text yields an empty dict.
        source: Where the text came from, for error messages.
        error_context: Optional context string for error messages (e.g. "config").

    Returns:
        Parsed JSON object.

    Raises:
        LoadError: If the text is not valid JSON or is not an object.
    """
    context_prefix = f"{error_context}: " if error_context else ""

    content = content.strip()
    if not content:
        return {}

    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        raise LoadError(f"{context_prefix}Invalid JSON in {source}: {e}") from e

    if not isinstance(result, dict):
        raise LoadError(
            f"{context_prefix}Expected object in {source}, got {type(result).__name__}"
        )

    return result


def load_json_file(path: Path, error_context: str = "") -> dict[str, Any]:
    """Load and parse a JSON file with consistent error handling.

    Args:
        path: Path to the JSON file to load.
        error_context: Optional context string for error messages.

    Returns:
        Parsed JSON as a dict. Returns empty dict if file is empty.

    Raises:
        LoadError: If the file doesn't exist, can't be read, contains invalid JSON,
            or contains non-dict JSON (e.g., array or scalar).
    """
    context_prefix = f"{error_context}: " if error_context else ""
    resolved = path.resolve()

    if not resolved.exists():
        raise LoadError(f"{context_prefix}File not found: {path}")

    try:
        content = resolved.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise LoadError(f"{context_prefix}Failed to read file {path}: {e}") from e

    return parse_json_object(content, str(path), error_context)


def load_json_file_optional(path: Path, error_context: str = "") -> dict[str, Any] | None:
    """Load JSON file if it exists, returning None for missing files.

    Raises:
        LoadError: If file exists but can't be read or contains invalid JSON.
    """
    resolved = path.resolve()

    if not resolved.is_file():
        logger.debug("Config file not found: %s (resolved: %s)", path, resolved)
        return None

    logger.debug("Loading config file: %s", resolved)
    return load_json_file(resolved, error_context)
