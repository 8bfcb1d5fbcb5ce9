"""Tests for notechat.config.load_utils module."""

from pathlib import Path

import pytest

from notechat.config.load_utils import (
    load_json_file,
    load_json_file_optional,
    parse_json_object,
)
from notechat.core.errors import LoadError


class TestLoadJsonFile:
    """Tests for load_json_file function."""

    def test_load_valid_json_file(self, tmp_path: Path) -> None:
        """Should successfully load a valid JSON file."""
        json_file = tmp_path / "valid.json"
        json_file.write_text('{"key": "value", "number": 42}', encoding="utf-8")

        assert load_json_file(json_file) == {"key": "value", "number": 42}

    def test_load_whitespace_only_file_returns_empty_dict(self, tmp_path: Path) -> None:
        """Files with only whitespace should return an empty dict."""
        json_file = tmp_path / "whitespace.json"
        json_file.write_text("   \n\t  \n  ", encoding="utf-8")

        assert load_json_file(json_file) == {}

    def test_utf8_bom_is_accepted(self, tmp_path: Path) -> None:
        json_file = tmp_path / "bom.json"
        json_file.write_bytes(b'\xef\xbb\xbf{"a": 1}')

        assert load_json_file(json_file) == {"a": 1}

    def test_load_nonexistent_file_raises_load_error(self, tmp_path: Path) -> None:
        """Non-existent files should raise LoadError."""
        nonexistent = tmp_path / "does_not_exist.json"

        with pytest.raises(LoadError) as exc_info:
            load_json_file(nonexistent)

        assert "File not found" in str(exc_info.value)
        assert str(nonexistent) in str(exc_info.value)

    def test_load_invalid_json_raises_load_error(self, tmp_path: Path) -> None:
        """Invalid JSON should raise LoadError."""
        invalid_file = tmp_path / "invalid.json"
        invalid_file.write_text('{"key": "unclosed', encoding="utf-8")

        with pytest.raises(LoadError) as exc_info:
            load_json_file(invalid_file)

        assert "Invalid JSON" in str(exc_info.value)

    def test_load_non_dict_json_raises_load_error(self, tmp_path: Path) -> None:
        """JSON that parses to a list should raise LoadError."""
        array_file = tmp_path / "array.json"
        array_file.write_text('["item1", "item2"]', encoding="utf-8")

        with pytest.raises(LoadError) as exc_info:
            load_json_file(array_file)

        assert "Expected object" in str(exc_info.value)
        assert "list" in str(exc_info.value)

    def test_error_context_prefix(self, tmp_path: Path) -> None:
        with pytest.raises(LoadError) as exc_info:
            load_json_file(tmp_path / "missing.json", "config")

        assert str(exc_info.value).startswith("config: ")


class TestLoadJsonFileOptional:
    def test_missing_returns_none(self, tmp_path: Path) -> None:
        assert load_json_file_optional(tmp_path / "nope.json") is None

    def test_present_file_is_loaded(self, tmp_path: Path) -> None:
        json_file = tmp_path / "config.json"
        json_file.write_text('{"provider": "ollama"}', encoding="utf-8")

        assert load_json_file_optional(json_file) == {"provider": "ollama"}

    def test_invalid_file_still_raises(self, tmp_path: Path) -> None:
        json_file = tmp_path / "config.json"
        json_file.write_text("{nope", encoding="utf-8")

        with pytest.raises(LoadError):
            load_json_file_optional(json_file)


class TestParseJsonObject:
    def test_blank_is_empty(self) -> None:
        assert parse_json_object("  ", "blob") == {}

    def test_scalar_rejected(self) -> None:
        with pytest.raises(LoadError, match="Expected object in blob, got int"):
            parse_json_object("3", "blob")
