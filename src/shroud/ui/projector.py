"""Projection of visibility decisions onto style classes and style blocks."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

from ..core.levels import GLOBAL_LEVEL_CLASSES, Level, PanelKind, StyleClass
from ..services.settings import Settings

__all__ = [
    "StyleProjector",
    "BLUR_LEVEL_BLOCK_ID",
    "PRIVATE_DIRS_BLOCK_ID",
    "render_blur_level_block",
    "render_private_dirs_block",
]

LOGGER = logging.getLogger(__name__)

BLUR_LEVEL_BLOCK_ID = "shroud-blur-level"
PRIVATE_DIRS_BLOCK_ID = "shroud-private-dirs"

_PANEL_KIND_CLASSES = tuple(kind.value for kind in PanelKind)
_GLOBAL_CLASSES = (
    StyleClass.BLUR_ALL.value,
    StyleClass.REVEAL_ON_HOVER.value,
    StyleClass.REVEAL_ALL.value,
    StyleClass.REVEAL_UNDER_CARET.value,
    StyleClass.REVEAL_HEADLINES.value,
)
_TREE_ITEMS = ":is(.nav-folder-title, .nav-file-title)"


def render_blur_level_block(blur_level: float) -> str:
    return f"body {{--blurLevel:{blur_level:g}em}}"


def render_private_dirs_block(prefixes: Iterable[str]) -> str:
    """Selector rules that blur file-tree entries below private directories."""

    rules: list[str] = []
    for prefix in prefixes:
        selector = f'{_TREE_ITEMS}[data-path^="{_escape_attr(prefix)}"]'
        rules.append(f"{selector} {{filter: blur(calc(var(--blurLevel) * 0))}}")
        rules.append(f"{selector}:hover {{filter: unset}}")
        rules.append(f".{StyleClass.REVEAL_ALL.value} {selector} {{filter: unset}}")
    return "\n".join(rules)


def _escape_attr(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class StyleProjector:
    """Writes panel and global decisions to the host's style targets."""

    def __init__(self) -> None:
        self._blur_sinks: List[Any] = []
        self._private_dir_sinks: List[Any] = []

    # ------------------------------------------------------------------
    # Panels
    # ------------------------------------------------------------------
    def apply_panel(self, target: Any, kind: PanelKind, revealed: bool) -> None:
        target.remove_class(*_PANEL_KIND_CLASSES)
        target.add_class(kind.value)
        if revealed:
            target.add_class(StyleClass.REVEAL.value)
        else:
            target.remove_class(StyleClass.REVEAL.value)

    def conceal(self, target: Any) -> None:
        target.remove_class(StyleClass.REVEAL.value)

    # ------------------------------------------------------------------
    # Global state
    # ------------------------------------------------------------------
    def apply_global(self, body: Any, level: Level, settings: Settings) -> None:
        body.remove_class(*_GLOBAL_CLASSES)
        level_class = GLOBAL_LEVEL_CLASSES.get(level)
        if level_class is not None:
            body.add_class(level_class.value)
        if settings.hover_to_reveal:
            body.add_class(StyleClass.REVEAL_ON_HOVER.value)
        if settings.reveal_under_caret:
            body.add_class(StyleClass.REVEAL_UNDER_CARET.value)

    # ------------------------------------------------------------------
    # Style blocks
    # ------------------------------------------------------------------
    def install_blur_level(self, sink: Any, settings: Settings) -> None:
        if sink not in self._blur_sinks:
            self._blur_sinks.append(sink)
        sink.set_style_block(BLUR_LEVEL_BLOCK_ID, render_blur_level_block(settings.blur_level))

    def update_blur_level(self, settings: Settings) -> None:
        text = render_blur_level_block(settings.blur_level)
        for sink in self._blur_sinks:
            sink.set_style_block(BLUR_LEVEL_BLOCK_ID, text)

    def install_private_dirs(self, sink: Any, settings: Settings) -> None:
        if sink not in self._private_dir_sinks:
            self._private_dir_sinks.append(sink)
        sink.set_style_block(PRIVATE_DIRS_BLOCK_ID, render_private_dirs_block(settings.private_dir_prefixes))

    def update_private_dirs(self, settings: Settings) -> None:
        if not self._private_dir_sinks:
            LOGGER.debug("No private directory style sink registered yet")
            return
        text = render_private_dirs_block(settings.private_dir_prefixes)
        for sink in self._private_dir_sinks:
            sink.set_style_block(PRIVATE_DIRS_BLOCK_ID, text)

    def release(self) -> None:
        self._blur_sinks.clear()
        self._private_dir_sinks.clear()
