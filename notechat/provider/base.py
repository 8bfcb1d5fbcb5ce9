"""Base provider with shared HTTP, auth, usage and streaming logic.

This module provides the abstract base class for all LLM backends. It
handles authentication, request/response error mapping, cost estimation
and driving a StreamDecoder over a streamed response. Nothing here
retries: a failed call surfaces as ProviderError and retrying is the
caller's decision.

Error bodies are capped so a misbehaving backend cannot exhaust memory.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import ssl
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import httpx

from notechat.analysis.extractor import build_analysis_prompt, extract_analysis
from notechat.config.schema import AuthMethod, ProviderConfig
from notechat.context.preamble import build_system_prompt
from notechat.context.token_counter import get_token_counter
from notechat.core.errors import ConfigurationMissingError, ProviderError
from notechat.core.identifiers import generate_id
from notechat.core.types import (
    AIContext,
    ChatOptions,
    ChatResponse,
    ConnectionStatus,
    Message,
    Role,
    StreamChunk,
    Usage,
)
from notechat.provider.catalog import ModelDescriptor, ProviderDescriptor, get_descriptor
from notechat.stream.decoder import StreamDecoder, StreamUnit

if TYPE_CHECKING:
    from notechat.analysis.types import Analysis, AnalysisKind
    from notechat.context.token_counter import TokenCounter
    from notechat.core.cancel import CancellationToken

logger = logging.getLogger(__name__)

# Hosts that are considered safe for HTTP (non-HTTPS) connections
_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "[::1]"})

MAX_ERROR_BODY_SIZE: int = 10 * 1024  # 10 KB

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000


def validate_base_url(url: str, allow_insecure: bool = False) -> None:
    """Validate provider base_url.

    Rules:
    - HTTPS URLs are always allowed
    - HTTP URLs are only allowed for loopback addresses unless allow_insecure
    - Anything else (no scheme, file://, ftp://, ...) is rejected

    Raises:
        ProviderError: If the URL fails validation.
    """
    if not url:
        raise ProviderError("Provider base_url cannot be empty")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = parsed.hostname or ""

    if scheme == "https":
        return

    if scheme == "http":
        if allow_insecure or host.lower() in _LOOPBACK_HOSTS:
            return
        raise ProviderError(
            f"HTTP base_url '{url}' is not allowed. "
            f"Use HTTPS, or http://localhost for local servers. "
            f"Set allow_insecure_http=true in provider config to override."
        )

    if not scheme:
        raise ProviderError(
            f"Provider base_url '{url}' must include a scheme (https:// or http://)"
        )

    raise ProviderError(
        f"Provider base_url scheme '{scheme}' is not allowed. Use https:// or http://localhost."
    )


def error_detail(body: bytes) -> str:
    """Best human-readable message from a (capped) error body."""
    text = body[:MAX_ERROR_BODY_SIZE].decode(errors="replace").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if data.get("message"):
            return str(data["message"])
    return text


class BaseProvider(ABC):
    """Abstract base class for LLM backends.

    Provides shared functionality:
    - API key resolution (stored credential or environment variable)
    - HTTP header building based on auth_method
    - Status-code mapping to ProviderError
    - System preamble injection and usage/cost estimation
    - Streaming through StreamDecoder with cancellation

    Subclasses implement:
    - _build_endpoint(): API endpoint URL
    - _build_request_body(): Convert messages to the backend's wire shape
    - _parse_response(): Extract text and usage from a JSON response
    - _extract_stream_unit(): Extract a delta from one streamed payload
    """

    def __init__(
        self,
        config: ProviderConfig,
        model_id: str,
        counter: TokenCounter | None = None,
    ) -> None:
        """Initialize the provider.

        Configuration is read here, once per construction, so a changed
        config takes effect the next time a provider is built.

        Args:
            config: Provider configuration.
            model_id: The model ID to use for API requests.
            counter: Token counter for usage fallbacks.

        Raises:
            ConfigurationMissingError: If a credential is required but absent.
            ProviderError: If base_url fails validation.
        """
        self._config = config
        self._descriptor = get_descriptor(config.type)

        validate_base_url(config.base_url, allow_insecure=config.allow_insecure_http)

        self._api_key = self._get_api_key()
        self._base_url = config.base_url.rstrip("/")
        self._model = self._descriptor.resolve_model(model_id, config.models)
        self._counter = counter or get_token_counter()

        self._timeout = config.request_timeout
        self._verify_ssl = config.verify_ssl
        self._ssl_ca_cert = config.ssl_ca_cert

        # Lazily created, instance-owned
        self._client: httpx.AsyncClient | None = None

    @property
    def provider_id(self) -> str:
        return self._descriptor.id

    @property
    def model(self) -> ModelDescriptor:
        return self._model

    def describe(self) -> ProviderDescriptor:
        return self._descriptor

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Falls back to the system certificate store if certifi's bundle is
        missing.
        """
        if self._client is None:
            if self._ssl_ca_cert:
                verify: bool | str | ssl.SSLContext = self._ssl_ca_cert
            else:
                verify = self._verify_ssl

            try:
                self._client = httpx.AsyncClient(timeout=self._timeout, verify=verify)
            except FileNotFoundError:
                logger.warning(
                    "SSL certificate bundle not found (certifi issue?), "
                    "falling back to system certificates"
                )
                self._client = httpx.AsyncClient(
                    timeout=self._timeout, verify=ssl.create_default_context()
                )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client. Safe to call multiple times."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_api_key(self) -> str | None:
        """Resolve the credential, or None if the backend needs none.

        Raises:
            ConfigurationMissingError: If auth is required but no key is set.
        """
        if self._config.auth_method == AuthMethod.NONE:
            return None

        if self._config.api_key:
            return self._config.api_key

        api_key = os.environ.get(self._config.api_key_env) if self._config.api_key_env else None
        if not api_key:
            raise ConfigurationMissingError(
                f"{self._descriptor.name} requires an API key. "
                f"Set the {self._config.api_key_env or 'api_key_env'} environment variable "
                f"or store api_key in the provider settings."
            )
        return api_key

    def _build_headers(self) -> dict[str, str]:
        """Build HTTP headers based on auth_method and config."""
        headers: dict[str, str] = {"Content-Type": "application/json"}
        headers.update(self._config.extra_headers)

        if self._api_key:
            match self._config.auth_method:
                case AuthMethod.BEARER:
                    headers["Authorization"] = f"Bearer {self._api_key}"
                case AuthMethod.X_API_KEY:
                    headers["x-api-key"] = self._api_key
                case AuthMethod.GOOG_API_KEY:
                    headers["x-goog-api-key"] = self._api_key
                case AuthMethod.NONE:
                    pass

        return headers

    def _error(self, message: str, status_code: int | None = None) -> ProviderError:
        return ProviderError(
            f"{self._descriptor.name}: {message}",
            provider_id=self.provider_id,
            status_code=status_code,
        )

    def _status_error(self, status_code: int, body: bytes) -> ProviderError:
        """Map a non-success HTTP status to ProviderError."""
        detail = error_detail(body)
        if status_code == 401:
            message = "Authentication failed. Check your API key."
        elif status_code == 403:
            message = "Access forbidden. Check your API permissions."
        elif status_code == 404:
            message = "Endpoint or model not found. Check your configuration."
        elif status_code == 429:
            message = "Rate limit exceeded. Try again later."
        else:
            message = f"API request failed ({status_code})"
        if detail:
            message = f"{message} {detail}"
        return self._error(message, status_code)

    async def _make_request(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        """Make a non-streaming HTTP request.

        Raises:
            ProviderError: On transport failure, non-success status, or a
                non-JSON body.
        """
        client = await self._ensure_client()
        try:
            response = await client.post(url, headers=self._build_headers(), json=body)
        except httpx.ConnectError as e:
            raise self._error(f"Failed to connect to {self._base_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise self._error(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise self._error(f"HTTP error occurred: {e}") from e

        if response.status_code >= 400:
            raise self._status_error(response.status_code, response.content)

        try:
            data = response.json()
        except ValueError as e:
            raise self._error(f"Invalid JSON in response: {e}") from e
        if not isinstance(data, dict):
            raise self._error(f"Expected JSON object, got {type(data).__name__}")
        return data

    async def _get_json(self, url: str) -> dict[str, Any]:
        """GET a JSON object, mapping failures like _make_request."""
        client = await self._ensure_client()
        try:
            response = await client.get(url, headers=self._build_headers())
        except httpx.ConnectError as e:
            raise self._error(f"Failed to connect to {self._base_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise self._error(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise self._error(f"HTTP error occurred: {e}") from e

        if response.status_code >= 400:
            raise self._status_error(response.status_code, response.content)
        try:
            data = response.json()
        except ValueError as e:
            raise self._error(f"Invalid JSON in response: {e}") from e
        if not isinstance(data, dict):
            raise self._error(f"Expected JSON object, got {type(data).__name__}")
        return data

    def _models_endpoint(self) -> str:
        return f"{self._base_url}/models"

    def _parse_model_names(self, data: dict[str, Any]) -> list[str]:
        entries = data.get("data") or []
        return [e["id"] for e in entries if isinstance(e, dict) and "id" in e]

    async def list_models(self) -> list[str]:
        """Model ids the backend reports as available.

        Raises:
            ProviderError: If the backend cannot be reached or refuses.
        """
        data = await self._get_json(self._models_endpoint())
        return self._parse_model_names(data)

    async def check_connection(self) -> ConnectionStatus:
        """List models as a reachability and credential check."""
        try:
            models = await self.list_models()
        except ProviderError as e:
            logger.info("Connection check failed for %s: %s", self.provider_id, e.message)
            return ConnectionStatus(connected=False, error=e.message)
        return ConnectionStatus(connected=True, models=tuple(models))

    @asynccontextmanager
    async def _open_stream(
        self,
        url: str,
        body: dict[str, Any],
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[httpx.Response | None]:
        """Open a streaming HTTP request; the response closes on exit.

        The request is sent as a task registered on cancel_token, so a
        cancel while waiting for response headers abandons the request.
        Yields None in that case.

        Raises:
            ProviderError: On transport failure or non-success status.
        """
        client = await self._ensure_client()
        request = client.build_request("POST", url, headers=self._build_headers(), json=body)
        try:
            sending = asyncio.ensure_future(client.send(request, stream=True))
            if cancel_token is not None:
                cancel_token.on_cancel(sending.cancel)
            try:
                response = await sending
            except asyncio.CancelledError:
                if cancel_token is None or not cancel_token.is_cancelled or not sending.cancelled():
                    raise
                logger.debug("Stream cancelled before %s responded", self.provider_id)
                response = None

            if response is None:
                yield None
                return
            try:
                if response.status_code >= 400:
                    error_body = await response.aread()
                    raise self._status_error(response.status_code, error_body)
                yield response
            finally:
                await response.aclose()
        except httpx.ConnectError as e:
            raise self._error(f"Failed to connect to {self._base_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise self._error(f"Stream timed out: {e}") from e
        except httpx.HTTPError as e:
            raise self._error(f"Stream interrupted: {e}") from e

    def _stream_error(self, error: Any) -> ProviderError:
        """ProviderError for an error object sent inside a stream."""
        if isinstance(error, dict):
            message = error.get("message") or json.dumps(error)
        else:
            message = str(error)
        logger.warning("%s stream error: %s", self._descriptor.name, message)
        return self._error(str(message))

    # Abstract methods for subclasses to implement

    @abstractmethod
    def _build_endpoint(self, model_id: str, stream: bool = False) -> str:
        """Build the API endpoint URL."""
        ...

    @abstractmethod
    def _build_request_body(
        self,
        system: str,
        messages: list[Message],
        options: ChatOptions,
        model_id: str,
        stream: bool,
    ) -> dict[str, Any]:
        """Build the request body in the backend's format.

        Args:
            system: System preamble.
            messages: Conversation without system messages.
            options: Resolved call options.
            model_id: Model to address.
            stream: Whether streaming is enabled.
        """
        ...

    @abstractmethod
    def _parse_response(self, data: dict[str, Any]) -> tuple[str, int | None, int | None]:
        """Extract (content, prompt_tokens, completion_tokens) from a response.

        Raises:
            KeyError, IndexError, TypeError: On an unexpected shape.
        """
        ...

    @abstractmethod
    def _extract_stream_unit(self, data: dict[str, Any]) -> StreamUnit:
        """Extract the content delta and usage from one streamed payload."""
        ...

    # Concrete implementations using abstract methods

    def _prepare(
        self, messages: list[Message], context: AIContext | None
    ) -> tuple[str, list[Message]]:
        """Split off system messages and drop empty assistant turns.

        Extra system messages are appended to the preamble. Empty assistant
        messages (a generation stopped before any output) are rejected by
        several backends, so they are not sent.
        """
        system_parts = [build_system_prompt(context)]
        conversation: list[Message] = []
        for message in messages:
            if message.role == Role.SYSTEM:
                system_parts.append(message.content)
            elif message.role == Role.ASSISTANT and not message.content.strip():
                continue
            else:
                conversation.append(message)
        return "\n\n".join(part for part in system_parts if part), conversation

    def _resolve_options(self, options: ChatOptions | None, stream: bool) -> ChatOptions:
        options = options or ChatOptions()
        return ChatOptions(
            model_id=options.model_id or self._model.id,
            temperature=DEFAULT_TEMPERATURE if options.temperature is None else options.temperature,
            max_tokens=options.max_tokens or DEFAULT_MAX_TOKENS,
            stream=stream,
        )

    def _model_for(self, model_id: str) -> ModelDescriptor:
        if model_id == self._model.id:
            return self._model
        return self._descriptor.resolve_model(model_id, self._config.models)

    def _usage(
        self,
        model: ModelDescriptor,
        system: str,
        conversation: list[Message],
        content: str,
        prompt_tokens: int | None,
        completion_tokens: int | None,
    ) -> Usage:
        """Usage from reported counts, estimating whatever was not reported."""
        if prompt_tokens is None:
            prompt_tokens = self._counter.count(system) + self._counter.count_messages(conversation)
        if completion_tokens is None:
            completion_tokens = self._counter.count(content)
        return Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost=model.estimate_cost(prompt_tokens, completion_tokens),
        )

    def estimate_usage(self, prompt_tokens: int, completion_tokens: int) -> Usage:
        return Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost=self._model.estimate_cost(prompt_tokens, completion_tokens),
        )

    async def chat(
        self,
        messages: list[Message],
        context: AIContext | None = None,
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Send the conversation and return the complete response.

        If ``options.stream`` is set the response is streamed and drained.

        Raises:
            ProviderError: If the API request fails.
        """
        if options is not None and options.stream:
            return await self._drain(messages, context, options)

        resolved = self._resolve_options(options, stream=False)
        assert resolved.model_id is not None
        model = self._model_for(resolved.model_id)
        system, conversation = self._prepare(messages, context)
        url = self._build_endpoint(model.id, stream=False)
        body = self._build_request_body(system, conversation, resolved, model.id, stream=False)

        data = await self._make_request(url, body)
        try:
            content, prompt_tokens, completion_tokens = self._parse_response(data)
        except (KeyError, IndexError, TypeError) as e:
            raise self._error(f"Failed to parse API response: {e}") from e

        if not content:
            logger.warning("Empty response from %s (%s)", self.provider_id, model.id)

        return ChatResponse(
            id=str(data.get("id") or generate_id("resp")),
            content=content,
            model_id=model.id,
            usage=self._usage(model, system, conversation, content, prompt_tokens, completion_tokens),
        )

    async def _drain(
        self,
        messages: list[Message],
        context: AIContext | None,
        options: ChatOptions,
    ) -> ChatResponse:
        parts: list[str] = []
        usage: Usage | None = None
        async for chunk in self.stream(messages, context, options):
            if chunk.done:
                usage = chunk.usage
            else:
                parts.append(chunk.content)
        content = "".join(parts)
        return ChatResponse(
            id=generate_id("resp"),
            content=content,
            model_id=options.model_id or self._model.id,
            usage=usage or self.estimate_usage(0, self._counter.count(content)),
        )

    async def stream(
        self,
        messages: list[Message],
        context: AIContext | None = None,
        options: ChatOptions | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream the response as content chunks followed by a terminal chunk.

        The terminal chunk carries usage with cost. Cancelling the token
        aborts the decoder and closes the response; no terminal chunk is
        yielded after an abort. Stopping iteration also closes the response.

        Raises:
            ProviderError: If the request fails or the stream breaks.
        """
        resolved = self._resolve_options(options, stream=True)
        assert resolved.model_id is not None
        model = self._model_for(resolved.model_id)
        system, conversation = self._prepare(messages, context)
        url = self._build_endpoint(model.id, stream=True)
        body = self._build_request_body(system, conversation, resolved, model.id, stream=True)

        async with self._open_stream(url, body, cancel_token) as response:
            if response is None:
                return
            decoder = StreamDecoder(response.aiter_bytes(), self._extract_stream_unit, self._counter)
            if cancel_token is not None:
                cancel_token.on_cancel(decoder.abort)
            async for chunk in decoder.chunks():
                if chunk.done:
                    chunk = replace(
                        chunk,
                        usage=self._usage(
                            model, system, conversation, decoder.text,
                            decoder.prompt_tokens, decoder.completion_tokens,
                        ),
                    )
                yield chunk

    async def complete(self, prompt: str, options: ChatOptions | None = None) -> str:
        """One-message, non-streaming chat call returning only the text."""
        message = Message(id=generate_id("msg"), role=Role.USER, content=prompt)
        if options is not None and options.stream:
            options = replace(options, stream=False)
        response = await self.chat([message], None, options)
        return response.content

    async def analyze(self, content: str, kind: AnalysisKind) -> Analysis:
        """Analyze note content and return the variant matching kind."""
        text = await self.complete(build_analysis_prompt(content, kind))
        return extract_analysis(text, kind)
