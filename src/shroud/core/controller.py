"""Owner of the global visibility level and the recomputation passes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List

from ..host.metadata import describe_panel
from ..ui.events import LevelChanged
from .context import VisibilityContext
from .levels import Level
from .policy import ViewInfo, classify_panel, should_reveal

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..host.protocols import Host
    from ..ui.events import EventBus
    from ..ui.projector import StyleProjector

__all__ = ["LevelController", "DEFERRED_REFRESH_SECONDS"]

LOGGER = logging.getLogger(__name__)

# Some host panels finish rendering after the switch itself has resolved.
DEFERRED_REFRESH_SECONDS = 0.2


class LevelController:
    """Applies level transitions and recomputes every open panel."""

    def __init__(
        self,
        context: VisibilityContext,
        host: "Host",
        projector: "StyleProjector",
        *,
        bus: "EventBus[Any] | None" = None,
    ) -> None:
        self._context = context
        self._host = host
        self._projector = projector
        self._bus = bus

    @property
    def level(self) -> Level:
        return self._context.level

    @property
    def context(self) -> VisibilityContext:
        return self._context

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def set_level(self, level: Level, *, source: str = "command") -> None:
        previous = self._context.level
        self._context.level = level
        if previous is not level:
            LOGGER.info("Visibility level %s -> %s (%s)", previous.value, level.value, source)
        self.refresh()
        if self._bus is not None:
            self._bus.publish(LevelChanged(previous=previous, current=level, source=source))

    def hide_all(self) -> None:
        self.set_level(Level.HIDE_ALL)

    def hide_private(self) -> None:
        self.set_level(Level.HIDE_PRIVATE)

    def reveal_headlines(self) -> None:
        self.set_level(Level.REVEAL_HEADLINES)

    def reveal_all(self) -> None:
        self.set_level(Level.REVEAL_ALL)

    # ------------------------------------------------------------------
    # Recomputation
    # ------------------------------------------------------------------
    def refresh(self) -> None:
        """Recompute every open panel and the global style class."""

        self.refresh_panels()
        self.refresh_global_style()

    def refresh_panels(self) -> None:
        if self._context.closed:
            return
        revealed: List[Any] = []
        count = 0
        for panel in self._host.iter_panels():
            if self._apply_panel(panel):
                revealed.append(panel.container)
            count += 1
        self._context.revealed = revealed
        LOGGER.debug("Recomputed %d panel(s); %d revealed", count, len(revealed))

    def refresh_panel(self, panel: Any) -> bool:
        """Recompute a single panel, keeping the revealed set in sync."""

        revealed = self._apply_panel(panel)
        container = panel.container
        if revealed and container not in self._context.revealed:
            self._context.revealed.append(container)
        elif not revealed and container in self._context.revealed:
            self._context.revealed.remove(container)
        return revealed

    def refresh_global_style(self) -> None:
        if self._context.closed:
            return
        self._projector.apply_global(self._host.body, self._context.level, self._context.settings)

    def describe(self, panel: Any) -> ViewInfo:
        return describe_panel(panel, self._host)

    def should_reveal(self, panel: Any) -> bool:
        return should_reveal(self._context.level, self._context.settings, self.describe(panel))

    def _apply_panel(self, panel: Any) -> bool:
        view = self.describe(panel)
        level = self._context.level
        revealed = should_reveal(level, self._context.settings, view)
        self._projector.apply_panel(panel.container, classify_panel(level, view), revealed)
        return revealed

    # ------------------------------------------------------------------
    # Switch support
    # ------------------------------------------------------------------
    def blank_revealed(self, panel: Any = None) -> None:
        """Conceal every currently revealed panel ahead of a content switch."""

        del panel  # every panel is blanked, not only the one switching
        for container in self._context.revealed:
            self._projector.conceal(container)
        self._context.revealed = []

    def schedule_refresh(self, delay: float = DEFERRED_REFRESH_SECONDS) -> Any:
        return self._context.call_later(delay, self.refresh_panels)
