"""Cooperative cancellation for completion requests."""

from __future__ import annotations

import threading

from .exceptions import CompletionCancelled


class CancellationToken:
    """Signal shared between the host and one in-flight completion request."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def raise_if_cancellation_requested(self) -> None:
        """Abort the current request if cancellation was requested."""
        if self._event.is_set():
            raise CompletionCancelled("completion request was cancelled")


class _NeverCancelledToken(CancellationToken):
    def cancel(self) -> None:
        raise RuntimeError("the shared NONE token cannot be cancelled")


NONE = _NeverCancelledToken()
