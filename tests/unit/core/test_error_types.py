"""Tests for the notechat exception hierarchy and AIError conversion."""

from notechat.core.errors import (
    AIError,
    BudgetExhaustedError,
    ConfigError,
    ConfigurationMissingError,
    ErrorCode,
    LoadError,
    NotechatError,
    ProviderError,
)


class TestErrorHierarchy:
    def test_subclass_relationships(self) -> None:
        assert issubclass(ConfigurationMissingError, ConfigError)
        assert issubclass(ConfigError, NotechatError)
        assert issubclass(ProviderError, NotechatError)
        assert issubclass(LoadError, NotechatError)

    def test_codes(self) -> None:
        assert ProviderError("x").code == ErrorCode.CHAT_ERROR
        assert ConfigurationMissingError("x").code == ErrorCode.CONFIGURATION_MISSING
        assert BudgetExhaustedError("x").code == ErrorCode.BUDGET_EXHAUSTED

    def test_message_attribute(self) -> None:
        error = NotechatError("something broke")
        assert error.message == "something broke"
        assert str(error) == "something broke"


class TestToAIError:
    def test_provider_error_keeps_its_provider(self) -> None:
        error = ProviderError("rate limited", provider_id="openai", status_code=429)

        record = error.to_ai_error()

        assert isinstance(record, AIError)
        assert record.code == ErrorCode.CHAT_ERROR
        assert record.message == "rate limited"
        assert record.provider_id == "openai"
        assert record.timestamp.tzinfo is not None

    def test_explicit_provider_wins(self) -> None:
        error = ProviderError("down", provider_id="openai")
        assert error.to_ai_error("anthropic").provider_id == "anthropic"

    def test_configuration_missing(self) -> None:
        record = ConfigurationMissingError("no key").to_ai_error("gemini")
        assert record.code == ErrorCode.CONFIGURATION_MISSING
        assert record.provider_id == "gemini"

    def test_error_code_is_string_valued(self) -> None:
        assert ErrorCode.PARSE_FAILED == "PARSE_FAILED"
        assert ErrorCode("ABORTED") is ErrorCode.ABORTED
