"""Cancellation support for async operations."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """Token for cooperative cancellation of an in-flight exchange.

    The orchestrator holds one token per active generation. Cancelling it
    notifies registered callbacks (the stream decoder registers its abort)
    so the underlying HTTP response is closed immediately.

    Example:
        token = CancellationToken()
        token.on_cancel(decoder.abort)

        # From another task:
        token.cancel()
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation and notify callbacks."""
        if self._cancelled:
            return
        self._cancelled = True
        for callback in self._callbacks:
            self._invoke(callback)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when cancelled.

        If already cancelled, callback is invoked immediately.
        """
        self._callbacks.append(callback)
        if self._cancelled:
            self._invoke(callback)

    @staticmethod
    def _invoke(callback: Callable[[], None]) -> None:
        # A failing callback must not prevent the remaining ones from running
        try:
            callback()
        except Exception:
            logger.exception("Cancellation callback failed")
