"""Cooperative cancellation for long-running operations.

A :class:`CancelToken` is created once per command invocation and
threaded through the HTTP client and the build-log tailer.  Cancelling
it wakes any pending :meth:`CancelToken.wait` and runs the registered
callbacks (the HTTP client registers one that closes its session so
in-flight requests are aborted rather than awaited).
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from caprover_cli.exceptions import OperationCancelledError


class CancelToken:
    """Thread-safe, one-shot cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._callbacks: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Cancel the token and run callbacks exactly once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register *callback*; runs immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*; return ``True`` if cancelled meanwhile."""
        return self._event.wait(seconds)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation cancelled.")
