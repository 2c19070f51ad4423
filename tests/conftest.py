"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from shroud.host.workspace import PanelWorkspace
from shroud.services.settings import SettingsStore
from tests.helpers import ManualClock, ManualScheduler


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("SHROUD_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SHROUD_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(1_000.0)


@pytest.fixture
def scheduler(clock: ManualClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def workspace() -> PanelWorkspace:
    return PanelWorkspace()


@pytest.fixture
def settings_store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json")
