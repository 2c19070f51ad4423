"""Idle lock: hide everything after a period without user input."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from .context import VisibilityContext
from .levels import Level

__all__ = ["IdleMonitor", "TICK_SECONDS"]

LOGGER = logging.getLogger(__name__)

TICK_SECONDS = 1.0


class IdleMonitor:
    """Tracks the last pointer/key press across windows and locks on timeout.

    ``clock`` must share its time base with the timestamps passed to
    :meth:`record_activity` (seconds, monotonic by default).
    """

    def __init__(
        self,
        context: VisibilityContext,
        lock: Callable[[], None],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._context = context
        self._lock = lock
        self._clock = clock
        self._last_activity: float | None = None
        self._handle: Any = None
        self._running = False

    @property
    def last_activity(self) -> float | None:
        return self._last_activity

    def record_activity(self, timestamp: float | None = None) -> None:
        self._last_activity = self._clock() if timestamp is None else timestamp

    def check(self, now: float | None = None) -> bool:
        """Evaluate one tick; returns ``True`` when the lock fired."""

        timeout = self._context.settings.blur_on_idle_timeout_seconds
        if timeout < 0:
            return False
        if self._context.level is Level.HIDE_ALL:
            return False
        if self._last_activity is None:
            return False
        current = self._clock() if now is None else now
        elapsed = current - self._last_activity
        if elapsed >= timeout:
            LOGGER.info("Idle for %.1fs (timeout %ss); hiding all content", elapsed, timeout)
            self._lock()
            return True
        return False

    # ------------------------------------------------------------------
    # Ticker
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._schedule()

    def stop(self) -> None:
        self._running = False
        handle, self._handle = self._handle, None
        cancel = getattr(handle, "cancel", None)
        if callable(cancel):
            cancel()

    def _schedule(self) -> None:
        self._handle = self._context.call_later(TICK_SECONDS, self._tick)

    def _tick(self) -> None:
        if not self._running:
            return
        try:
            self.check()
        finally:
            self._schedule()
