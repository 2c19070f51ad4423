"""Integration tests for the host plugin lifecycle."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from shroud.core.controller import DEFERRED_REFRESH_SECONDS
from shroud.core.hooks import is_hooked
from shroud.core.levels import Level
from shroud.host.metadata import FileMetadata
from shroud.host.workspace import AuxiliaryPanel, DocumentPanel, PanelWorkspace
from shroud.plugin import ShroudPlugin
from shroud.services.settings import Settings, SettingsStore
from shroud.ui.events import Event, EventBus, LevelChanged, PanelActivated, SettingsChanged
from shroud.ui.projector import BLUR_LEVEL_BLOCK_ID, PRIVATE_DIRS_BLOCK_ID
from tests.helpers import ManualClock, ManualScheduler


@pytest.fixture
def bus() -> EventBus[Event]:
    return EventBus()


@pytest.fixture
def events(bus: EventBus[Event]) -> list[Event]:
    received: list[Event] = []
    for event_type in (LevelChanged, SettingsChanged, PanelActivated):
        bus.subscribe(event_type, received.append)
    return received


@pytest.fixture
def panels(workspace: PanelWorkspace):
    private = workspace.open_document("therapy/session.md")
    public = workspace.open_document("work/plan.md")
    explorer = workspace.add_panel(AuxiliaryPanel(kind="explorer"), make_active=False)
    return private, public, explorer


def _make_plugin(
    workspace: PanelWorkspace,
    store: SettingsStore,
    scheduler: ManualScheduler,
    clock: ManualClock,
    bus: EventBus[Event] | None = None,
    **settings: Any,
) -> ShroudPlugin:
    initial = Settings(private_dirs="therapy", **settings)
    return ShroudPlugin(workspace, store, bus=bus, scheduler=scheduler, clock=clock, settings=initial)


@pytest.fixture
def plugin(workspace, settings_store, scheduler, clock, bus, panels) -> ShroudPlugin:
    instance = _make_plugin(workspace, settings_store, scheduler, clock, bus)
    instance.load()
    instance.on_layout_ready()
    return instance


def test_requires_load_before_use(workspace, settings_store, scheduler, clock) -> None:
    plugin = _make_plugin(workspace, settings_store, scheduler, clock)

    with pytest.raises(RuntimeError):
        _ = plugin.level
    plugin.unload()


def test_layout_ready_applies_startup_level(workspace, settings_store, scheduler, clock, panels) -> None:
    plugin = _make_plugin(workspace, settings_store, scheduler, clock, blur_on_startup=Level.HIDE_ALL)

    plugin.load()
    assert sorted(plugin.actions) == [
        "shroud-hide-all",
        "shroud-hide-private",
        "shroud-reveal-all",
        "shroud-reveal-headlines",
    ]
    assert plugin.idle is not None and plugin.idle.running

    plugin.on_layout_ready()

    assert plugin.level is Level.HIDE_ALL
    assert workspace.body.has_class("shroud-blur-all")
    blocks = workspace.main_window.style_sink.blocks
    assert blocks[BLUR_LEVEL_BLOCK_ID] == "body {--blurLevel:0.3em}"
    assert '"therapy"' in blocks[PRIVATE_DIRS_BLOCK_ID]
    assert all(is_hooked(panel) for panel in panels)


def test_settings_loaded_from_store_when_not_supplied(
    workspace, settings_store, scheduler, clock, panels
) -> None:
    settings_store.save(Settings(blur_on_startup=Level.REVEAL_HEADLINES))
    plugin = ShroudPlugin(workspace, settings_store, scheduler=scheduler, clock=clock)

    plugin.load()
    plugin.on_layout_ready()

    assert plugin.level is Level.REVEAL_HEADLINES


def test_commands_switch_levels(plugin: ShroudPlugin, workspace, events) -> None:
    plugin.run_command("shroud-reveal-all")

    assert plugin.level is Level.REVEAL_ALL
    assert workspace.body.has_class("shroud-reveal-all")
    assert events[-1] == LevelChanged(
        previous=Level.HIDE_PRIVATE, current=Level.REVEAL_ALL, source="command"
    )
    with pytest.raises(KeyError):
        plugin.run_command("shroud-unknown")
    assert len(plugin.palette_commands()) == 4


def test_switch_blanks_then_refreshes(plugin: ShroudPlugin, panels, scheduler) -> None:
    private, public, explorer = panels
    assert public.container.has_class("shroud-reveal")
    assert explorer.container.has_class("shroud-reveal")

    public.set_state({"file": "therapy/other.md"})

    assert not public.container.has_class("shroud-reveal")
    assert not explorer.container.has_class("shroud-reveal")
    assert plugin.context is not None and plugin.context.revealed == []

    scheduler.advance(DEFERRED_REFRESH_SECONDS)

    assert explorer.container.has_class("shroud-reveal")
    assert not public.container.has_class("shroud-reveal")
    assert not private.container.has_class("shroud-reveal")


def test_switch_hooks_panels_opened_in_background(plugin: ShroudPlugin, workspace, panels) -> None:
    _, public, _ = panels
    background = workspace.add_panel(DocumentPanel(file_path="work/draft.md"), make_active=False)
    assert not is_hooked(background)

    public.set_state({"file": "work/next.md"})

    assert is_hooked(background)


def test_async_switch_schedules_refresh_after_settle(plugin: ShroudPlugin, workspace, scheduler) -> None:
    context = plugin.context
    assert context is not None
    baseline = context.pending_count

    async def scenario() -> None:
        release = asyncio.Event()

        async def loader(state: Any) -> None:
            await release.wait()

        panel = workspace.open_document("work/slow.md", loader=loader, make_active=False)
        plugin.ensure_panels_hooked()

        future = panel.set_state({"file": "work/other.md"})
        await asyncio.sleep(0)
        assert context.pending_count == baseline

        release.set()
        await future
        assert context.pending_count == baseline + 1
        assert panel.file_path == "work/other.md"

    asyncio.run(scenario())
    scheduler.advance(DEFERRED_REFRESH_SECONDS)
    assert context.pending_count == baseline


def test_active_panel_change_hooks_and_restyles(plugin: ShroudPlugin, workspace, events) -> None:
    workspace.set_file_metadata("work/tagged.md", FileMetadata(frontmatter={"tags": ["#private"]}))

    panel = workspace.open_document("work/tagged.md")

    assert is_hooked(panel)
    assert panel.container.has_class("is-document-view")
    assert not panel.container.has_class("shroud-reveal")
    assert events[-1] == PanelActivated(panel_id=panel.panel_id, revealed=False)


def test_new_window_gets_activity_tracking(plugin: ShroudPlugin, workspace) -> None:
    window = workspace.open_window()

    window.emit_key_press(1_234.0)

    assert window.style_sink.blocks[BLUR_LEVEL_BLOCK_ID] == "body {--blurLevel:0.3em}"
    assert plugin.idle is not None and plugin.idle.last_activity == 1_234.0

    workspace.main_window.emit_pointer_press(1_240.0)
    assert plugin.idle.last_activity == 1_240.0


def test_idle_timeout_hides_everything(
    workspace, settings_store, scheduler, clock, bus, events, panels
) -> None:
    plugin = _make_plugin(
        workspace, settings_store, scheduler, clock, bus, blur_on_idle_timeout_seconds=5
    )
    plugin.load()
    plugin.on_layout_ready()

    scheduler.advance(4)
    assert plugin.level is Level.HIDE_PRIVATE

    scheduler.advance(1)
    assert plugin.level is Level.HIDE_ALL
    assert events[-1] == LevelChanged(previous=Level.HIDE_PRIVATE, current=Level.HIDE_ALL, source="idle")
    assert not any(panel.container.has_class("shroud-reveal") for panel in panels)


class TestUpdateSetting:
    def test_blur_level_updates_style_block_and_persists(
        self, plugin: ShroudPlugin, workspace, settings_store, events
    ) -> None:
        value = plugin.update_setting("blur_level", "0.9")

        assert value == pytest.approx(0.9)
        assert workspace.main_window.style_sink.blocks[BLUR_LEVEL_BLOCK_ID] == "body {--blurLevel:0.9em}"
        stored = json.loads(settings_store.path.read_text(encoding="utf-8"))
        assert stored["blur_level"] == pytest.approx(0.9)
        assert events[-1] == SettingsChanged(name="blur_level", value=value)

    def test_private_dirs_recompute_panels_and_rules(self, plugin: ShroudPlugin, workspace, panels) -> None:
        private, public, _ = panels

        plugin.update_setting("private_dirs", "work")

        assert private.container.has_class("shroud-reveal")
        assert not public.container.has_class("shroud-reveal")
        assert '"work"' in workspace.main_window.style_sink.blocks[PRIVATE_DIRS_BLOCK_ID]

    def test_private_marker_recomputes_panels(self, plugin: ShroudPlugin, workspace, panels) -> None:
        _, public, _ = panels
        workspace.set_file_metadata("work/plan.md", FileMetadata(body_tags=("#secret",)))

        plugin.update_setting("private_note_marker", "#secret")

        assert not public.container.has_class("shroud-reveal")

    def test_modifier_classes(self, plugin: ShroudPlugin, workspace) -> None:
        plugin.update_setting("reveal_under_caret", True)
        plugin.update_setting("hover_to_reveal", "false")

        assert workspace.body.has_class("shroud-reveal-under-caret")
        assert not workspace.body.has_class("shroud-reveal-on-hover")

    def test_startup_level_is_persisted_only(self, plugin: ShroudPlugin, settings_store) -> None:
        plugin.update_setting("blur_on_startup", "hide-all")

        assert plugin.level is Level.HIDE_PRIVATE
        assert SettingsStore(settings_store.path).load().blur_on_startup is Level.HIDE_ALL

    def test_unknown_setting_is_rejected(self, plugin: ShroudPlugin) -> None:
        with pytest.raises(KeyError):
            plugin.update_setting("theme", "dark")


def test_unload_tears_down_and_saves(plugin: ShroudPlugin, workspace, settings_store, panels, scheduler) -> None:
    _, public, _ = panels
    public.set_state({"file": "work/next.md"})
    context = plugin.context
    assert context is not None and context.pending_count >= 1

    plugin.unload()
    scheduler.advance(DEFERRED_REFRESH_SECONDS)

    assert context.closed
    assert not public.container.has_class("shroud-reveal")
    assert not any(is_hooked(panel) for panel in panels)
    assert plugin.idle is not None and not plugin.idle.running
    assert settings_store.path.exists()

    late = workspace.open_document("work/late.md")
    assert not is_hooked(late)
