"""Pure reveal/hide decision for a single panel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, AbstractSet

from .levels import Level, PanelKind

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.settings import Settings

__all__ = ["ViewInfo", "should_reveal", "classify_panel", "is_private_path"]


@dataclass(frozen=True, slots=True)
class ViewInfo:
    """Classification of an open panel as seen by the policy.

    ``tags`` is ``None`` when the host has no metadata for the backing file;
    the policy treats that exactly like an empty tag set.
    """

    is_document_panel: bool
    tags: AbstractSet[str] | None = None
    parent_path: str | None = None

    @classmethod
    def non_document(cls) -> "ViewInfo":
        return cls(is_document_panel=False)


def should_reveal(level: Level, settings: "Settings", view: ViewInfo) -> bool:
    """Return ``True`` when ``view`` should render unobscured.

    Rules are evaluated in order and the first match wins. Absolute levels are
    checked before any per-document classification, and a non-empty tag set
    decides on its own without consulting the private directory list.
    """

    if level is Level.REVEAL_ALL:
        return True
    if level in (Level.HIDE_ALL, Level.REVEAL_HEADLINES):
        return False
    if not view.is_document_panel:
        return True

    marker = settings.private_note_marker
    tags = view.tags or frozenset()
    if marker and tags:
        return marker not in tags

    if is_private_path(view.parent_path, settings.private_dir_prefixes):
        return False
    return True


def classify_panel(level: Level, view: ViewInfo) -> PanelKind:
    if not view.is_document_panel:
        return PanelKind.NON_DOCUMENT
    if level is Level.REVEAL_HEADLINES:
        return PanelKind.DOCUMENT_HEADLINES_ONLY
    return PanelKind.DOCUMENT


def is_private_path(parent_path: str | None, prefixes: tuple[str, ...]) -> bool:
    if not parent_path:
        return False
    return any(parent_path.startswith(prefix) for prefix in prefixes)
