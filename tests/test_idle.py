"""Tests for the idle lock."""

from __future__ import annotations

import pytest

from shroud.core.context import VisibilityContext
from shroud.core.idle import TICK_SECONDS, IdleMonitor
from shroud.core.levels import Level
from shroud.services.settings import Settings
from tests.helpers import ManualClock, ManualScheduler


@pytest.fixture
def context(scheduler: ManualScheduler) -> VisibilityContext:
    return VisibilityContext(
        settings=Settings(blur_on_idle_timeout_seconds=5), scheduler=scheduler
    )


@pytest.fixture
def locks(context: VisibilityContext) -> list[float]:
    return []


@pytest.fixture
def monitor(context: VisibilityContext, clock: ManualClock, locks: list[float]) -> IdleMonitor:
    def _lock() -> None:
        locks.append(clock.now)
        context.level = Level.HIDE_ALL

    return IdleMonitor(context, _lock, clock=clock)


def test_lock_fires_after_timeout(monitor: IdleMonitor, locks: list[float]) -> None:
    monitor.record_activity(100.0)

    assert monitor.check(now=104.0) is False
    assert monitor.check(now=106.0) is True
    assert locks == [pytest.approx(1_000.0)]


def test_timeout_boundary_is_inclusive(monitor: IdleMonitor) -> None:
    monitor.record_activity(100.0)

    assert monitor.check(now=105.0) is True


def test_disabled_timeout_never_locks(monitor: IdleMonitor, context: VisibilityContext) -> None:
    context.settings.blur_on_idle_timeout_seconds = -1
    monitor.record_activity(0.0)

    assert monitor.check(now=10_000.0) is False


def test_no_lock_when_already_hidden(monitor: IdleMonitor, context: VisibilityContext) -> None:
    context.level = Level.HIDE_ALL
    monitor.record_activity(0.0)

    assert monitor.check(now=60.0) is False


def test_no_lock_without_recorded_activity(monitor: IdleMonitor) -> None:
    assert monitor.last_activity is None
    assert monitor.check(now=60.0) is False


def test_record_activity_defaults_to_clock(monitor: IdleMonitor, clock: ManualClock) -> None:
    clock.advance(3)

    monitor.record_activity()

    assert monitor.last_activity == pytest.approx(1_003.0)


def test_ticker_locks_once_and_keeps_running(
    monitor: IdleMonitor,
    scheduler: ManualScheduler,
    clock: ManualClock,
    locks: list[float],
) -> None:
    monitor.start()
    monitor.record_activity()

    scheduler.advance(4 * TICK_SECONDS)
    assert locks == []

    scheduler.advance(2 * TICK_SECONDS)
    assert locks == [pytest.approx(1_005.0)]

    scheduler.advance(10 * TICK_SECONDS)
    assert len(locks) == 1
    assert monitor.running
    assert len(scheduler.pending) == 1


def test_activity_postpones_lock(
    monitor: IdleMonitor, scheduler: ManualScheduler, clock: ManualClock, locks: list[float]
) -> None:
    monitor.start()
    monitor.record_activity()

    scheduler.advance(4)
    monitor.record_activity()
    scheduler.advance(4)

    assert locks == []


def test_stop_cancels_ticker(monitor: IdleMonitor, scheduler: ManualScheduler, locks: list[float]) -> None:
    monitor.start()
    monitor.start()
    monitor.record_activity()
    assert len(scheduler.pending) == 1

    monitor.stop()
    scheduler.advance(60)

    assert not monitor.running
    assert scheduler.pending == []
    assert locks == []


def test_closed_context_silences_ticker(
    monitor: IdleMonitor, context: VisibilityContext, scheduler: ManualScheduler, locks: list[float]
) -> None:
    monitor.start()
    monitor.record_activity()

    context.close()
    scheduler.advance(60)

    assert locks == []
