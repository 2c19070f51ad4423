"""Visibility levels and the style class vocabulary shared with the projector."""

from __future__ import annotations

from enum import Enum

__all__ = ["Level", "PanelKind", "StyleClass", "GLOBAL_LEVEL_CLASSES", "parse_level"]


class Level(str, Enum):
    """Global visibility mode; exactly one is active at a time."""

    HIDE_ALL = "hide-all"
    HIDE_PRIVATE = "hide-private"
    REVEAL_ALL = "reveal-all"
    REVEAL_HEADLINES = "reveal-headlines"

    @property
    def label(self) -> str:
        return _LEVEL_LABELS[self]


_LEVEL_LABELS: dict[Level, str] = {
    Level.HIDE_ALL: "Hide all",
    Level.HIDE_PRIVATE: "Hide private (default)",
    Level.REVEAL_ALL: "Reveal all",
    Level.REVEAL_HEADLINES: "Reveal headlines only",
}


class PanelKind(str, Enum):
    """Per-panel classification emitted alongside the reveal decision."""

    DOCUMENT = "is-document-view"
    NON_DOCUMENT = "is-non-document-view"
    DOCUMENT_HEADLINES_ONLY = "is-document-view-headlines-only"


class StyleClass(str, Enum):
    BLUR_ALL = "shroud-blur-all"
    REVEAL_ALL = "shroud-reveal-all"
    REVEAL_HEADLINES = "shroud-reveal-headlines"
    REVEAL_ON_HOVER = "shroud-reveal-on-hover"
    REVEAL_UNDER_CARET = "shroud-reveal-under-caret"
    REVEAL = "shroud-reveal"


# HIDE_PRIVATE is the default and is expressed by the absence of a class.
GLOBAL_LEVEL_CLASSES: dict[Level, StyleClass] = {
    Level.HIDE_ALL: StyleClass.BLUR_ALL,
    Level.REVEAL_ALL: StyleClass.REVEAL_ALL,
    Level.REVEAL_HEADLINES: StyleClass.REVEAL_HEADLINES,
}


def parse_level(value: object, default: Level | None = Level.HIDE_PRIVATE) -> Level | None:
    """Return the :class:`Level` matching ``value`` or ``default`` when unknown."""

    if isinstance(value, Level):
        return value
    if value is None:
        return default
    normalized = str(value).strip().lower().replace("_", "-")
    try:
        return Level(normalized)
    except ValueError:
        return default
