"""Cooperative cancellation token for plugin runs.

One token is created per ``PluginHandle.start()`` and threaded into the
engine instance of that run.  The engine polls it at its own checkpoints
(a Lua count hook, cancellable sleeps in capability modules) and aborts with
``ScriptInterrupted`` once it fires.

ARCHITECTURE
────────────
::

    PluginHandle.cancel()          engine checkpoint (worker thread)
          │                                   │
          ▼                                   ▼
    CancelToken.cancel(reason) ──► Event ──► token.cancelled → abort
                                        └──► token.wait(s)  → wake early

BEST PRACTICES
──────────────
- ``cancel()`` is idempotent and never raises; calling it on an already
  fired token keeps the first reason.
- Blocking capability code should sleep with ``token.wait(seconds)`` rather
  than ``time.sleep`` so cancellation is honoured mid-sleep.

Tags:
    luaplug, execution, cancellation, cooperative, thread-safe

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from luaplug.core.errors import ScriptInterrupted


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class CancelToken:
    """One-shot, thread-safe cancellation signal.

    Example:
        >>> token = CancelToken()
        >>> token.cancelled
        False
        >>> token.cancel("stop requested")
        >>> token.cancel()  # no-op
        >>> token.cancelled, token.reason
        (True, 'stop requested')
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self.reason: str | None = None
        self.cancelled_at: datetime | None = None

    @property
    def cancelled(self) -> bool:
        """True once ``cancel()`` has been called."""
        return self._event.is_set()

    def cancel(self, reason: str = "requested") -> None:
        """Fire the token (idempotent)."""
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self.cancelled_at = utcnow()
            self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the token fires or *timeout* elapses.

        Returns:
            True if the token fired, False on timeout
        """
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        """Raise ``ScriptInterrupted`` if the token fired."""
        if self._event.is_set():
            raise ScriptInterrupted(context={"reason": self.reason})

    def __repr__(self) -> str:
        state = f"cancelled, reason={self.reason!r}" if self.cancelled else "active"
        return f"CancelToken({state})"


__all__ = ["CancelToken"]
