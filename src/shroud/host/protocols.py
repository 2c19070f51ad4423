"""Interfaces the visibility engine consumes from its host application."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional, Protocol

from .metadata import FileMetadata

__all__ = [
    "StyleTarget",
    "StyleSheetSink",
    "HostPanel",
    "HostWindow",
    "Host",
    "ActivityListener",
    "ActivePanelListener",
    "WindowOpenedListener",
]


class StyleTarget(Protocol):
    """A rendering surface that carries style classes (a panel container, the body)."""

    def add_class(self, *names: str) -> None:
        ...

    def remove_class(self, *names: str) -> None:
        ...

    def has_class(self, name: str) -> bool:
        ...


class StyleSheetSink(Protocol):
    """Style-injection point of a root rendering surface."""

    def set_style_block(self, block_id: str, text: str) -> None:
        ...


class HostPanel(Protocol):
    """An open panel as exposed by the host.

    ``set_state`` is the content-switch entry point. It may return a plain value
    or an awaitable that resolves once the switch has been rendered.
    """

    is_document_panel: bool
    file_path: Optional[str]
    container: StyleTarget

    def set_state(self, state: Any) -> Any:
        ...


ActivityListener = Callable[[float], None]
ActivePanelListener = Callable[[Optional[HostPanel]], None]


class HostWindow(Protocol):
    style_sink: StyleSheetSink

    def add_activity_listener(self, listener: ActivityListener) -> None:
        ...

    def remove_activity_listener(self, listener: ActivityListener) -> None:
        ...


WindowOpenedListener = Callable[[HostWindow], None]


class Host(Protocol):
    main_window: HostWindow
    body: StyleTarget

    def iter_panels(self) -> Iterator[HostPanel]:
        ...

    def file_metadata(self, path: str) -> FileMetadata | None:
        ...

    def add_active_listener(self, listener: ActivePanelListener) -> None:
        ...

    def remove_active_listener(self, listener: ActivePanelListener) -> None:
        ...

    def add_window_listener(self, listener: WindowOpenedListener) -> None:
        ...

    def remove_window_listener(self, listener: WindowOpenedListener) -> None:
        ...
