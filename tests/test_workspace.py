"""Unit tests for the in-process host model."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from shroud.host.metadata import FileMetadata
from shroud.host.workspace import AuxiliaryPanel, DocumentPanel, HostWindowModel, PanelWorkspace


def test_open_document_activates_and_notifies(workspace: PanelWorkspace) -> None:
    seen: list[Any] = []
    workspace.add_active_listener(seen.append)

    first = workspace.open_document("a.md")
    second = workspace.open_document("b.md", make_active=False)

    assert workspace.active_panel is first
    assert seen == [first]
    assert list(workspace.iter_panels()) == [first, second]
    assert workspace.panel_count() == 2


def test_set_active_panel_ignores_repeat_selection(workspace: PanelWorkspace) -> None:
    first = workspace.open_document("a.md")
    second = workspace.open_document("b.md")
    seen: list[Any] = []
    workspace.add_active_listener(seen.append)

    workspace.set_active_panel(second.panel_id)
    workspace.set_active_panel(first.panel_id)

    assert seen == [first]
    with pytest.raises(KeyError):
        workspace.set_active_panel("missing")


def test_close_panel_falls_back_to_neighbour(workspace: PanelWorkspace) -> None:
    first = workspace.open_document("a.md")
    second = workspace.open_document("b.md")
    seen: list[Any] = []
    workspace.add_active_listener(seen.append)

    workspace.close_panel(second.panel_id)
    workspace.close_panel(first.panel_id)

    assert seen == [first, None]
    assert workspace.active_panel is None
    with pytest.raises(KeyError):
        workspace.close_panel(first.panel_id)


def test_open_window_notifies_listeners(workspace: PanelWorkspace) -> None:
    opened: list[HostWindowModel] = []
    workspace.add_window_listener(opened.append)

    window = workspace.open_window()
    workspace.remove_window_listener(opened.append)
    workspace.open_window()

    assert opened == [window]
    assert tuple(workspace.iter_windows())[:2] == (workspace.main_window, window)


def test_window_reports_pointer_and_key_presses() -> None:
    window = HostWindowModel()
    stamps: list[float] = []
    window.add_activity_listener(stamps.append)

    window.emit_pointer_press(1.0)
    window.emit_key_press(2.5)
    window.remove_activity_listener(stamps.append)
    window.emit_key_press(3.0)

    assert stamps == [1.0, 2.5]


def test_metadata_cache(workspace: PanelWorkspace) -> None:
    metadata = FileMetadata(body_tags=("#x",))
    workspace.set_file_metadata("a.md", metadata)

    assert workspace.file_metadata("a.md") is metadata
    workspace.set_file_metadata("a.md", None)
    assert workspace.file_metadata("a.md") is None


def test_document_panel_switch_with_loader() -> None:
    loaded: list[str] = []

    async def loader(state: Any) -> None:
        await asyncio.sleep(0)
        loaded.append(state["file"])

    panel = DocumentPanel(file_path="a.md", loader=loader)
    asyncio.run(panel.set_state({"file": "b.md"}))

    assert loaded == ["b.md"]
    assert panel.file_path == "b.md"
    assert panel.state == {"file": "b.md"}


def test_auxiliary_panel_is_not_a_document() -> None:
    panel = AuxiliaryPanel(kind="graph")
    panel.set_state({"zoom": 2})

    assert panel.is_document_panel is False
    assert panel.file_path is None
    assert panel.state == {"zoom": 2}
