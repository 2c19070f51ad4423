"""In-process host model managing panels, windows and cached file metadata."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from .metadata import FileMetadata
from .protocols import ActivePanelListener, ActivityListener, WindowOpenedListener

__all__ = [
    "ClassList",
    "RootSurface",
    "HostWindowModel",
    "DocumentPanel",
    "AuxiliaryPanel",
    "PanelWorkspace",
]

LOGGER = logging.getLogger(__name__)

StateLoader = Callable[[Mapping[str, Any]], Awaitable[None]]


def _generate_panel_id() -> str:
    return uuid.uuid4().hex


class ClassList:
    """Minimal class-list container mirroring a DOM ``classList``."""

    __slots__ = ("_classes", "__weakref__")

    def __init__(self, *initial: str) -> None:
        self._classes: set[str] = set(initial)

    def add_class(self, *names: str) -> None:
        self._classes.update(names)

    def remove_class(self, *names: str) -> None:
        self._classes.difference_update(names)

    def has_class(self, name: str) -> bool:
        return name in self._classes

    @property
    def classes(self) -> frozenset[str]:
        return frozenset(self._classes)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"ClassList({sorted(self._classes)!r})"


class RootSurface:
    """Style sink holding named style blocks for one window."""

    def __init__(self) -> None:
        self.blocks: Dict[str, str] = {}

    def set_style_block(self, block_id: str, text: str) -> None:
        self.blocks[block_id] = text


@dataclass(eq=False)
class HostWindowModel:
    """A host window: a style sink plus the input activity it reports."""

    window_id: str = field(default_factory=_generate_panel_id)
    style_sink: RootSurface = field(default_factory=RootSurface)
    _listeners: List[ActivityListener] = field(default_factory=list)

    def add_activity_listener(self, listener: ActivityListener) -> None:
        self._listeners.append(listener)

    def remove_activity_listener(self, listener: ActivityListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:  # pragma: no cover - defensive
            pass

    def emit_pointer_press(self, timestamp: float) -> None:
        self._emit(timestamp)

    def emit_key_press(self, timestamp: float) -> None:
        self._emit(timestamp)

    def _emit(self, timestamp: float) -> None:
        for listener in list(self._listeners):
            listener(timestamp)


class DocumentPanel:
    """A document-editing panel whose content is switched through ``set_state``.

    When ``loader`` is provided the switch completes asynchronously: the
    returned coroutine awaits the loader before the new file becomes visible.
    """

    is_document_panel = True

    def __init__(
        self,
        *,
        panel_id: str | None = None,
        file_path: str | None = None,
        loader: StateLoader | None = None,
    ) -> None:
        self.panel_id = panel_id or _generate_panel_id()
        self.file_path = file_path
        self.container = ClassList()
        self.state: Dict[str, Any] = {"file": file_path}
        self._loader = loader

    def set_state(self, state: Mapping[str, Any]) -> Any:
        if self._loader is None:
            self._apply(state)
            return None
        return self._switch(state)

    async def _switch(self, state: Mapping[str, Any]) -> None:
        assert self._loader is not None
        await self._loader(state)
        self._apply(state)

    def _apply(self, state: Mapping[str, Any]) -> None:
        self.state = dict(state)
        self.file_path = state.get("file")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"DocumentPanel(id={self.panel_id!r}, file={self.file_path!r})"


class AuxiliaryPanel:
    """Any non-document panel (file explorer, outline, graph, preview)."""

    is_document_panel = False
    file_path: Optional[str] = None

    def __init__(self, *, panel_id: str | None = None, kind: str = "explorer") -> None:
        self.panel_id = panel_id or _generate_panel_id()
        self.kind = kind
        self.container = ClassList()
        self.state: Dict[str, Any] = {}

    def set_state(self, state: Mapping[str, Any]) -> None:
        self.state = dict(state)


class PanelWorkspace:
    """Manages open panels, windows and the metadata cache for a host session."""

    def __init__(self) -> None:
        self.main_window = HostWindowModel()
        self.body = ClassList()
        self._panels: Dict[str, Any] = {}
        self._order: List[str] = []
        self._active_panel_id: str | None = None
        self._windows: List[HostWindowModel] = [self.main_window]
        self._metadata: Dict[str, FileMetadata] = {}
        self._active_listeners: List[ActivePanelListener] = []
        self._window_listeners: List[WindowOpenedListener] = []

    # ------------------------------------------------------------------
    # Panel lifecycle helpers
    # ------------------------------------------------------------------
    def add_panel(self, panel: Any, *, make_active: bool = True) -> Any:
        panel_id = panel.panel_id
        self._panels[panel_id] = panel
        self._order.append(panel_id)
        if make_active or self._active_panel_id is None:
            self.set_active_panel(panel_id)
        return panel

    def open_document(
        self,
        file_path: str | None = None,
        *,
        loader: StateLoader | None = None,
        make_active: bool = True,
    ) -> DocumentPanel:
        return self.add_panel(DocumentPanel(file_path=file_path, loader=loader), make_active=make_active)

    def close_panel(self, panel_id: str) -> Any:
        if panel_id not in self._panels:
            raise KeyError(f"Unknown panel_id: {panel_id}")
        panel = self._panels.pop(panel_id)
        index = self._order.index(panel_id)
        self._order.pop(index)
        if self._active_panel_id == panel_id:
            if self._order:
                fallback_index = index if index < len(self._order) else len(self._order) - 1
                self._active_panel_id = self._order[fallback_index]
            else:
                self._active_panel_id = None
            self._notify_active_listeners()
        return panel

    def set_active_panel(self, panel_id: str) -> Any:
        if panel_id not in self._panels:
            raise KeyError(f"Unknown panel_id: {panel_id}")
        if self._active_panel_id == panel_id:
            return self._panels[panel_id]
        self._active_panel_id = panel_id
        self._notify_active_listeners()
        return self._panels[panel_id]

    @property
    def active_panel(self) -> Any | None:
        if self._active_panel_id is None:
            return None
        return self._panels.get(self._active_panel_id)

    def iter_panels(self) -> Iterator[Any]:
        for panel_id in tuple(self._order):
            panel = self._panels.get(panel_id)
            if panel is not None:
                yield panel

    def panel_count(self) -> int:
        return len(self._order)

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------
    def open_window(self) -> HostWindowModel:
        window = HostWindowModel()
        self._windows.append(window)
        for listener in list(self._window_listeners):
            listener(window)
        return window

    def iter_windows(self) -> Iterable[HostWindowModel]:
        return tuple(self._windows)

    # ------------------------------------------------------------------
    # Metadata cache
    # ------------------------------------------------------------------
    def set_file_metadata(self, path: str, metadata: FileMetadata | None) -> None:
        if metadata is None:
            self._metadata.pop(path, None)
            return
        self._metadata[path] = metadata

    def file_metadata(self, path: str) -> FileMetadata | None:
        return self._metadata.get(path)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_active_listener(self, listener: ActivePanelListener) -> None:
        self._active_listeners.append(listener)

    def remove_active_listener(self, listener: ActivePanelListener) -> None:
        try:
            self._active_listeners.remove(listener)
        except ValueError:  # pragma: no cover - defensive
            pass

    def add_window_listener(self, listener: WindowOpenedListener) -> None:
        self._window_listeners.append(listener)

    def remove_window_listener(self, listener: WindowOpenedListener) -> None:
        try:
            self._window_listeners.remove(listener)
        except ValueError:  # pragma: no cover - defensive
            pass

    def _notify_active_listeners(self) -> None:
        panel = self.active_panel
        LOGGER.debug("Active panel changed to %s", getattr(panel, "panel_id", None))
        for listener in list(self._active_listeners):
            listener(panel)
