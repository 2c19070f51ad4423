"""Host integration: lifecycle, commands, settings surface and switch hooks."""

from __future__ import annotations

import logging
import time
from dataclasses import fields
from typing import Any, Callable, Dict, Optional

from .core.context import LoopScheduler, Scheduler, VisibilityContext
from .core.controller import LevelController
from .core.hooks import ViewStateHook
from .core.idle import IdleMonitor
from .core.levels import Level
from .host.protocols import Host, HostPanel, HostWindow
from .services.settings import Settings, SettingsStore, normalize_value
from .ui.actions import PaletteCommand, WindowAction, build_level_actions, build_palette_commands
from .ui.events import EventBus, PanelActivated, SettingsChanged
from .ui.projector import StyleProjector

__all__ = ["ShroudPlugin"]

LOGGER = logging.getLogger(__name__)

_SETTING_NAMES = frozenset(field.name for field in fields(Settings))


class ShroudPlugin:
    """Wires the visibility engine into a host session.

    ``load`` prepares state and commands, ``on_layout_ready`` applies the startup
    level once the host has restored its panels, and ``unload`` tears everything
    down and persists settings.
    """

    def __init__(
        self,
        host: Host,
        store: SettingsStore,
        *,
        bus: EventBus[Any] | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        settings: Settings | None = None,
    ) -> None:
        self.host = host
        self.store = store
        self.bus: EventBus[Any] = bus or EventBus()
        self._scheduler = scheduler or LoopScheduler()
        self._clock = clock
        self._initial_settings = settings
        self.context: VisibilityContext | None = None
        self.projector = StyleProjector()
        self.controller: LevelController | None = None
        self.hook: ViewStateHook | None = None
        self.idle: IdleMonitor | None = None
        self.actions: Dict[str, WindowAction] = {}
        self._activity_windows: list[HostWindow] = []

    @property
    def settings(self) -> Settings:
        return self._require_context().settings

    @property
    def level(self) -> Level:
        return self._require_context().level

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def load(self) -> None:
        settings = self._initial_settings or self.store.load()
        self.context = VisibilityContext(settings=settings, scheduler=self._scheduler)
        self.controller = LevelController(self.context, self.host, self.projector, bus=self.bus)
        self.hook = ViewStateHook(self._before_switch, self._after_switch)
        self.idle = IdleMonitor(self.context, self._idle_lock, clock=self._clock)
        self.actions = build_level_actions(self.controller)

        self.host.add_window_listener(self._handle_window_opened)
        self.host.add_active_listener(self._handle_active_panel_changed)
        self.idle.start()
        self.idle.record_activity()
        LOGGER.info("Shroud loaded (startup level %s)", settings.blur_on_startup.value)

    def on_layout_ready(self) -> None:
        controller = self._require_controller()
        main_window = self.host.main_window
        self._register_activity_events(main_window)
        controller.set_level(self.settings.blur_on_startup, source="startup")
        self.projector.install_private_dirs(main_window.style_sink, self.settings)
        self.ensure_panels_hooked()

    def unload(self) -> None:
        if self.context is None:
            return
        if self.idle is not None:
            self.idle.stop()
        self.host.remove_window_listener(self._handle_window_opened)
        self.host.remove_active_listener(self._handle_active_panel_changed)
        for window in self._activity_windows:
            window.remove_activity_listener(self._record_activity)
        self._activity_windows.clear()
        hook = self.hook
        if hook is not None:
            for panel in self.host.iter_panels():
                hook.uninstall(panel)
        self.projector.release()
        self.context.close()
        try:
            self.store.save(self.context.settings)
        except OSError as exc:
            LOGGER.warning("Failed to save settings on unload: %s", exc)
        LOGGER.info("Shroud unloaded")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def run_command(self, command_id: str) -> None:
        try:
            action = self.actions[command_id]
        except KeyError:
            raise KeyError(f"Unknown command: {command_id}") from None
        action.trigger()

    def palette_commands(self) -> list[PaletteCommand]:
        return build_palette_commands(self.actions)

    # ------------------------------------------------------------------
    # Settings surface
    # ------------------------------------------------------------------
    def update_setting(self, name: str, value: Any) -> Any:
        """Apply a settings edit, refresh what it affects and persist it."""

        if name not in _SETTING_NAMES:
            raise KeyError(f"Unknown setting '{name}'")
        settings = self.settings
        normalized = normalize_value(name, value)
        setattr(settings, name, normalized)
        controller = self._require_controller()

        if name == "hover_to_reveal":
            controller.refresh()
        elif name == "reveal_under_caret":
            controller.refresh_global_style()
        elif name == "blur_level":
            self.projector.update_blur_level(settings)
        elif name == "private_dirs":
            controller.refresh()
            self.projector.update_private_dirs(settings)
        elif name == "private_note_marker":
            controller.refresh_panels()

        try:
            self.store.save(settings)
        except OSError as exc:
            LOGGER.warning("Failed to save settings after changing %s: %s", name, exc)
        self.bus.publish(SettingsChanged(name=name, value=normalized))
        return normalized

    # ------------------------------------------------------------------
    # Panel hooks
    # ------------------------------------------------------------------
    def ensure_panels_hooked(self) -> int:
        hook = self._require_hook()
        installed = 0
        for panel in self.host.iter_panels():
            if hook.install(panel):
                installed += 1
        return installed

    def _before_switch(self, panel: HostPanel) -> None:
        self._require_controller().blank_revealed(panel)

    def _after_switch(self, panel: HostPanel) -> None:
        del panel
        if self.context is None or self.context.closed:
            return
        self._require_controller().schedule_refresh()
        self.ensure_panels_hooked()

    # ------------------------------------------------------------------
    # Host notifications
    # ------------------------------------------------------------------
    def _handle_active_panel_changed(self, panel: Optional[HostPanel]) -> None:
        if self.context is None or self.context.closed:
            return
        self.ensure_panels_hooked()
        if panel is None:
            return
        revealed = self._require_controller().refresh_panel(panel)
        self.bus.publish(PanelActivated(panel_id=getattr(panel, "panel_id", None), revealed=revealed))

    def _handle_window_opened(self, window: HostWindow) -> None:
        self._register_activity_events(window)

    def _register_activity_events(self, window: HostWindow) -> None:
        if window not in self._activity_windows:
            window.add_activity_listener(self._record_activity)
            self._activity_windows.append(window)
        self.projector.install_blur_level(window.style_sink, self.settings)

    def _record_activity(self, timestamp: float) -> None:
        if self.idle is not None:
            self.idle.record_activity(timestamp)

    def _idle_lock(self) -> None:
        self._require_controller().set_level(Level.HIDE_ALL, source="idle")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_context(self) -> VisibilityContext:
        if self.context is None:
            raise RuntimeError("Plugin is not loaded")
        return self.context

    def _require_controller(self) -> LevelController:
        if self.controller is None:
            raise RuntimeError("Plugin is not loaded")
        return self.controller

    def _require_hook(self) -> ViewStateHook:
        if self.hook is None:
            raise RuntimeError("Plugin is not loaded")
        return self.hook
