"""Core types and interfaces."""

from notechat.core.cancel import CancellationToken
from notechat.core.errors import (
    AIError,
    ConfigError,
    ConfigurationMissingError,
    ErrorCode,
    LoadError,
    NotechatError,
    ProviderError,
)
from notechat.core.interfaces import AsyncProvider, FileOperationExecutor
from notechat.core.types import (
    AIContext,
    ChatOptions,
    ChatResponse,
    ConnectionStatus,
    Message,
    NoteContext,
    NoteExcerpt,
    Role,
    SearchResult,
    StreamChunk,
    Usage,
)

__all__ = [
    "CancellationToken",
    # Errors
    "AIError",
    "ErrorCode",
    "NotechatError",
    "ConfigError",
    "ConfigurationMissingError",
    "ProviderError",
    "LoadError",
    # Interfaces
    "AsyncProvider",
    "FileOperationExecutor",
    # Types
    "AIContext",
    "ChatOptions",
    "ChatResponse",
    "ConnectionStatus",
    "Message",
    "NoteContext",
    "NoteExcerpt",
    "Role",
    "SearchResult",
    "StreamChunk",
    "Usage",
]
