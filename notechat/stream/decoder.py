"""Incremental decoding of backend response streams.

Backends frame streamed output either as newline-delimited JSON objects
(Ollama) or as ``data: `` prefixed event lines (OpenAI, Anthropic, Gemini).
``FrameScanner`` turns raw bytes into complete JSON payload strings for
both framings; ``StreamDecoder`` drives a byte source through the scanner,
hands each payload to a backend-specific extractor and yields
``StreamChunk`` objects until a terminal unit, EOF, or abort.
"""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from notechat.context.token_counter import get_token_counter
from notechat.core.types import StreamChunk

if TYPE_CHECKING:
    from notechat.context.token_counter import TokenCounter

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"

# Longest payload excerpt written to the log for a skipped unit
_LOG_EXCERPT = 200

_IGNORED_FIELDS = ("event:", "id:", "retry:")


class DecoderState(Enum):
    """Lifecycle of a StreamDecoder."""

    OPEN = "open"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True)
class StreamUnit:
    """What a backend extractor found in one decoded payload.

    Attributes:
        delta: Incremental content text (may be empty).
        done: True if this unit terminates the stream.
        prompt_tokens: Input token count, when the backend reports it.
        completion_tokens: Output token count, when the backend reports it.
    """

    delta: str = ""
    done: bool = False
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


UnitExtractor = Callable[[dict[str, Any]], StreamUnit]


class FrameScanner:
    """Single-pass line scanner over an incrementally delivered byte stream.

    Bytes pass through an incremental UTF-8 decoder, so a multi-byte
    character split across reads is held over until its remaining bytes
    arrive. Complete lines are classified:

    - ``data: <payload>`` -> payload (SSE framing)
    - ``{...}`` -> the line itself (newline-delimited JSON)
    - blank lines, ``:`` comments, ``event:``/``id:``/``retry:`` -> ignored
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> list[str]:
        """Consume bytes and return the payloads of every completed line."""
        return self._scan(self._decoder.decode(data))

    def flush(self) -> list[str]:
        """Drain held-over bytes and the final unterminated line."""
        payloads = self._scan(self._decoder.decode(b"", final=True))
        tail, self._buffer = self._buffer, ""
        payload = self.classify(tail)
        if payload is not None:
            payloads.append(payload)
        return payloads

    def _scan(self, text: str) -> list[str]:
        buffer = self._buffer + text
        payloads: list[str] = []
        start = 0
        while True:
            end = buffer.find("\n", start)
            if end < 0:
                break
            payload = self.classify(buffer[start:end])
            if payload is not None:
                payloads.append(payload)
            start = end + 1
        self._buffer = buffer[start:]
        return payloads

    @staticmethod
    def classify(line: str) -> str | None:
        """Return the payload carried by one line, or None if it carries none."""
        line = line.strip()
        if not line or line.startswith(":"):
            return None
        if line.startswith("data:"):
            return line[5:].strip() or None
        if line.startswith(_IGNORED_FIELDS):
            return None
        return line


class StreamDecoder:
    """State machine turning a byte source into StreamChunks.

    ``OPEN -> DONE`` on a terminal unit or EOF, ``OPEN -> ABORTED`` on
    ``abort()``. Consumption is pull-based through ``chunks()``; every read
    cycle races the next source read against the abort signal, so an abort
    interrupts a read that is waiting on a hung backend.

    Example:
        decoder = StreamDecoder(response.aiter_bytes(), extract_unit)
        token.on_cancel(decoder.abort)
        async for chunk in decoder.chunks():
            ...
    """

    def __init__(
        self,
        source: AsyncIterator[bytes],
        extract: UnitExtractor,
        counter: TokenCounter | None = None,
        close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the decoder.

        Args:
            source: Incrementally available bytes (e.g. ``response.aiter_bytes()``).
            extract: Backend-specific extractor for one parsed JSON payload.
                Exceptions other than shape errors (KeyError, IndexError,
                TypeError, ValueError) propagate out of chunks().
            counter: Token counter used when the backend reports no usage.
            close: Extra cleanup awaited once the stream ends or is aborted.
        """
        self._source = source
        self._extract = extract
        self._counter = counter or get_token_counter()
        self._close = close
        self._scanner = FrameScanner()
        self._state = DecoderState.OPEN
        self._abort_event: asyncio.Event | None = None
        self._parts: list[str] = []
        self.prompt_tokens: int | None = None
        self.completion_tokens: int | None = None
        self.units_seen = 0
        self.units_skipped = 0

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def text(self) -> str:
        """All content deltas emitted so far, concatenated."""
        return "".join(self._parts)

    def abort(self) -> None:
        """Stop decoding immediately. Safe to call from a sync callback."""
        if self._state is not DecoderState.OPEN:
            return
        self._state = DecoderState.ABORTED
        if self._abort_event is not None:
            self._abort_event.set()
        logger.debug("Stream aborted after %d units", self.units_seen)

    async def chunks(self) -> AsyncIterator[StreamChunk]:
        """Yield content chunks, then one terminal chunk unless aborted."""
        if self._state is not DecoderState.OPEN:
            return
        self._abort_event = asyncio.Event()
        try:
            while self._state is DecoderState.OPEN:
                data = await self._next_bytes()
                if self._state is DecoderState.ABORTED:
                    return
                payloads = self._scanner.flush() if data is None else self._scanner.feed(data)
                for payload in payloads:
                    emitted = self._handle(payload)
                    for chunk in emitted:
                        if self._state is DecoderState.ABORTED:
                            return
                        yield chunk
                    if self._state is not DecoderState.OPEN:
                        return
                if data is None:
                    # EOF without a terminal marker still completes the stream
                    yield self._finish()
                    return
        finally:
            await self._close_source()

    async def _read(self) -> bytes | None:
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            return None

    async def _next_bytes(self) -> bytes | None:
        """Next non-empty read, or None at EOF or on abort."""
        assert self._abort_event is not None
        while True:
            read = asyncio.ensure_future(self._read())
            aborted = asyncio.ensure_future(self._abort_event.wait())
            try:
                await asyncio.wait({read, aborted}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                aborted.cancel()
                if not read.done():
                    read.cancel()
                    # Let the source unwind before it is closed
                    await asyncio.wait({read})
            if self._state is DecoderState.ABORTED:
                if not read.cancelled():
                    read.exception()
                return None
            data = read.result()
            if data is None or data:
                return data

    def _handle(self, payload: str) -> list[StreamChunk]:
        if payload == DONE_SENTINEL:
            return [self._finish()]

        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self._skip(payload, "invalid JSON")
            return []
        if not isinstance(data, dict):
            self._skip(payload, f"expected object, got {type(data).__name__}")
            return []

        try:
            unit = self._extract(data)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            self._skip(payload, f"unexpected shape: {e}")
            return []

        self.units_seen += 1
        if unit.prompt_tokens is not None:
            self.prompt_tokens = unit.prompt_tokens
        if unit.completion_tokens is not None:
            self.completion_tokens = unit.completion_tokens

        chunks: list[StreamChunk] = []
        if unit.delta:
            self._parts.append(unit.delta)
            chunks.append(StreamChunk(content=unit.delta))
        if unit.done:
            chunks.append(self._finish())
        return chunks

    def _skip(self, payload: str, reason: str) -> None:
        self.units_skipped += 1
        logger.warning(
            "Skipping stream unit (%s): %s", reason, payload[:_LOG_EXCERPT]
        )

    def _finish(self) -> StreamChunk:
        self._state = DecoderState.DONE
        if self.completion_tokens is not None:
            tokens = self.completion_tokens
        else:
            tokens = self._counter.count(self.text)
        logger.debug(
            "Stream complete: units=%d, skipped=%d, content_len=%d, tokens=%d",
            self.units_seen, self.units_skipped, len(self.text), tokens,
        )
        return StreamChunk(content="", done=True, tokens_so_far=tokens)

    async def _close_source(self) -> None:
        aclose = getattr(self._source, "aclose", None)
        try:
            if aclose is not None:
                await aclose()
            if self._close is not None:
                await self._close()
        except Exception:
            logger.debug("Error while closing stream source", exc_info=True)
