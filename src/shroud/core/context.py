"""Session state shared by the visibility components."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Protocol

from ..services.settings import Settings
from .levels import Level

__all__ = ["Scheduler", "LoopScheduler", "VisibilityContext"]

LOGGER = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Deferred-callback primitive; ``asyncio`` loops satisfy it directly."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        ...


class LoopScheduler:
    """Schedules callbacks on the running (or current) asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._resolve_loop().call_later(delay, callback)

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.get_event_loop()


@dataclass(eq=False)
class VisibilityContext:
    """Level, settings and revealed panels for one host session.

    Constructed once at startup and handed to every component; ``close`` ends
    the session so that late timers become no-ops.
    """

    settings: Settings
    scheduler: Scheduler = field(default_factory=LoopScheduler)
    level: Level = Level.HIDE_PRIVATE
    revealed: List[Any] = field(default_factory=list)
    closed: bool = False
    _pending: List[Any] = field(default_factory=list, repr=False)

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        """Schedule ``callback`` unless the session has ended; it is skipped after close."""

        if self.closed:
            return None

        def _guarded() -> None:
            if handle in self._pending:
                self._pending.remove(handle)
            if self.closed:
                return
            callback()

        handle = self.scheduler.call_later(delay, _guarded)
        self._pending.append(handle)
        return handle

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for handle in self._pending:
            cancel = getattr(handle, "cancel", None)
            if callable(cancel):
                cancel()
        LOGGER.debug("Visibility context closed (%d pending callbacks cancelled)", len(self._pending))
        self._pending.clear()
        self.revealed.clear()
