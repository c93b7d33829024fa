"""Cooperative cancellation for in-flight requests."""

from __future__ import annotations

import threading
import time
from typing import Optional


class CancellationToken:
    """
    Event-backed cancellation flag with an optional deadline.

    The engine checks the token before every attempt and around every retry
    sleep. Sleeping through ``wait`` returns early once the token fires.

    Usage:
        >>> token = CancellationToken(timeout=10)
        >>> client.new_request().path("/slow").cancel_with(token).get()
        >>> token.cancel()  # from another thread
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        if self._deadline is not None:
            seconds = min(seconds, max(0.0, self._deadline - time.monotonic()))
        self._event.wait(seconds)
        return self.cancelled


__all__ = ["CancellationToken"]
