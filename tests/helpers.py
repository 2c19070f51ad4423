"""Shared test helpers and stub classes.

This module contains reusable test stubs that are used across multiple test files.
Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

from typing import Any, Callable, List


class ManualClock:
    """Monotonic clock stub advanced explicitly by tests.

    Example:
        clock = ManualClock(100.0)
        monitor = IdleMonitor(context, lock, clock=clock)
        clock.advance(5)
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ManualHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """``call_later`` stub that only fires callbacks when time is advanced."""

    def __init__(self, clock: ManualClock | None = None) -> None:
        self.clock = clock or ManualClock()
        self._handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.clock.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        return [handle for handle in self._handles if not handle.cancelled]

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks (including newly scheduled ones) in order."""

        target = self.clock.now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda item: item.when)
            self._handles.remove(handle)
            self.clock.now = max(self.clock.now, handle.when)
            handle.callback()
        self.clock.now = target


class RecordingTarget:
    """Style target that records every class mutation."""

    def __init__(self) -> None:
        self.classes: set[str] = set()
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def add_class(self, *names: str) -> None:
        self.calls.append(("add", names))
        self.classes.update(names)

    def remove_class(self, *names: str) -> None:
        self.calls.append(("remove", names))
        self.classes.difference_update(names)

    def has_class(self, name: str) -> bool:
        return name in self.classes


class SlottedPanel:
    """Panel that refuses attribute assignment, like some host-native views."""

    __slots__ = ()
    is_document_panel = True
    file_path = None

    def set_state(self, state: Any) -> None:
        return None
