"""Incremental stream decoding for SSE and newline-delimited JSON framing."""

from notechat.stream.decoder import (
    DONE_SENTINEL,
    DecoderState,
    FrameScanner,
    StreamDecoder,
    StreamUnit,
    UnitExtractor,
)

__all__ = [
    "DONE_SENTINEL",
    "DecoderState",
    "FrameScanner",
    "StreamDecoder",
    "StreamUnit",
    "UnitExtractor",
]
