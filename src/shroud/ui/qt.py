"""Qt host adapters: activity tracking, blur rendering and a tabbed viewer.

PySide6 is optional at import time so the headless pieces (and tests) work
without a display; :func:`qt_available` reports whether the widgets can be
built.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..core.levels import StyleClass
from ..host.files import extract_metadata, load_file_metadata
from ..host.metadata import FileMetadata
from ..host.protocols import ActivePanelListener, ActivityListener, WindowOpenedListener
from ..host.workspace import ClassList, RootSurface

QEvent: Any = None
QObject: Any = None
QAction: Any = None
QGraphicsBlurEffect: Any = None
QMainWindow: Any = None
QTabWidget: Any = None
QTextBrowser: Any = None
QToolBar: Any = None
QApplication: Any = None

try:  # pragma: no cover - PySide6 optional in CI
    from PySide6.QtCore import QEvent as _QtEvent, QObject as _QtObject
    from PySide6.QtGui import QAction as _QtAction
    from PySide6.QtWidgets import (
        QApplication as _QtApplication,
        QGraphicsBlurEffect as _QtGraphicsBlurEffect,
        QMainWindow as _QtMainWindow,
        QTabWidget as _QtTabWidget,
        QTextBrowser as _QtTextBrowser,
        QToolBar as _QtToolBar,
    )

    QEvent = _QtEvent
    QObject = _QtObject
    QAction = _QtAction
    QApplication = _QtApplication
    QGraphicsBlurEffect = _QtGraphicsBlurEffect
    QMainWindow = _QtMainWindow
    QTabWidget = _QtTabWidget
    QTextBrowser = _QtTextBrowser
    QToolBar = _QtToolBar
    _QT_AVAILABLE = True
except Exception:  # pragma: no cover - runtime fallback
    _QT_AVAILABLE = False

__all__ = [
    "qt_available",
    "blur_radius",
    "relative_vault_path",
    "QtActivityFilter",
    "QtPanelStyler",
    "QtHostWindow",
    "QtDocumentPanel",
    "QtViewerHost",
]

LOGGER = logging.getLogger(__name__)

_PIXELS_PER_EM = 16.0
_QObjectBase: Any = QObject if _QT_AVAILABLE else object


def qt_available() -> bool:
    return _QT_AVAILABLE


def blur_radius(blur_level: float) -> float:
    """Convert the em-based blur level into a ``QGraphicsBlurEffect`` radius."""

    return round(max(0.0, blur_level) * _PIXELS_PER_EM, 2)


def relative_vault_path(path: Path, vault_root: Path) -> str:
    """Vault-relative POSIX path used by the directory rule; absolute when outside."""

    resolved = path.expanduser().resolve()
    try:
        return resolved.relative_to(vault_root.expanduser().resolve()).as_posix()
    except ValueError:
        return resolved.as_posix()


class QtPanelStyler(ClassList):
    """Style target that renders the reveal decision with a blur effect."""

    __slots__ = ("_widget", "_radius", "_hover_enabled", "_hovering", "_filter")

    def __init__(
        self,
        widget: Any,
        *,
        radius: Callable[[], float],
        hover_enabled: Callable[[], bool] = lambda: False,
    ) -> None:
        super().__init__()
        self._widget = widget
        self._radius = radius
        self._hover_enabled = hover_enabled
        self._hovering = False
        self._filter = _HoverFilter(self) if _QT_AVAILABLE and widget is not None else None
        if self._filter is not None:
            widget.installEventFilter(self._filter)

    @property
    def blurred(self) -> bool:
        if self.has_class(StyleClass.REVEAL.value):
            return False
        return not (self._hovering and self._hover_enabled())

    def add_class(self, *names: str) -> None:
        super().add_class(*names)
        self.render()

    def remove_class(self, *names: str) -> None:
        super().remove_class(*names)
        self.render()

    def set_hovering(self, hovering: bool) -> None:
        self._hovering = hovering
        self.render()

    def render(self) -> None:
        widget = self._widget
        if widget is None or not _QT_AVAILABLE:
            return
        if not self.blurred:
            widget.setGraphicsEffect(None)
            return
        effect = widget.graphicsEffect()
        if effect is None or not isinstance(effect, QGraphicsBlurEffect):
            effect = QGraphicsBlurEffect(widget)
            widget.setGraphicsEffect(effect)
        effect.setBlurRadius(self._radius())


class _HoverFilter(_QObjectBase):  # type: ignore[misc, valid-type]
    def __init__(self, target: QtPanelStyler) -> None:
        super().__init__()
        self._target = target

    def eventFilter(self, watched: Any, event: Any) -> bool:  # noqa: N802 - Qt override
        kind = event.type()
        if kind == QEvent.Type.Enter:
            self._target.set_hovering(True)
        elif kind == QEvent.Type.Leave:
            self._target.set_hovering(False)
        return False


class QtActivityFilter(_QObjectBase):  # type: ignore[misc, valid-type]
    def __init__(self, emit: Callable[[], None]) -> None:
        super().__init__()
        self._emit = emit

    def eventFilter(self, watched: Any, event: Any) -> bool:  # noqa: N802 - Qt override
        if event.type() in (QEvent.Type.MouseButtonPress, QEvent.Type.KeyPress):
            self._emit()
        return False


class QtHostWindow:
    """Root surface of the viewer; reports pointer and key presses."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.style_sink = RootSurface()
        self._clock = clock
        self._listeners: List[ActivityListener] = []
        self._filter: Any = None

    def install(self, app: Any) -> None:
        if not _QT_AVAILABLE or app is None or self._filter is not None:
            return
        self._filter = QtActivityFilter(self.emit_activity)
        app.installEventFilter(self._filter)

    def add_activity_listener(self, listener: ActivityListener) -> None:
        self._listeners.append(listener)

    def remove_activity_listener(self, listener: ActivityListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:  # pragma: no cover - defensive
            pass

    def emit_activity(self) -> None:
        timestamp = self._clock()
        for listener in list(self._listeners):
            listener(timestamp)


class QtDocumentPanel:
    """A tab showing one markdown file in a read-only browser."""

    is_document_panel = True

    def __init__(self, host: "QtViewerHost", path: Path) -> None:
        self.panel_id = str(path)
        self._host = host
        self.widget = QTextBrowser() if _QT_AVAILABLE else None
        self.container = QtPanelStyler(
            self.widget,
            radius=host.current_blur_radius,
            hover_enabled=lambda: host.body.has_class(StyleClass.REVEAL_ON_HOVER.value),
        )
        self.path = path
        self.file_path: Optional[str] = None

    def set_state(self, state: Dict[str, Any]) -> None:
        path = Path(state["file"])
        text = path.read_text(encoding="utf-8")
        self._host.cache_metadata(path, text)
        self.path = path
        self.file_path = relative_vault_path(path, self._host.vault_root)
        if self.widget is not None:
            self.widget.setMarkdown(text)


class QtViewerHost:
    """Minimal tabbed markdown viewer implementing the host interface."""

    def __init__(
        self,
        *,
        vault_root: Path | None = None,
        blur_level: Callable[[], float] = lambda: 0.3,
    ) -> None:
        if not _QT_AVAILABLE:
            raise RuntimeError("PySide6 must be installed to launch the shroud viewer.")
        self.vault_root = (vault_root or Path.cwd()).expanduser().resolve()
        self.body = ClassList()
        self.main_window = QtHostWindow()
        self._blur_level = blur_level
        self._panels: List[QtDocumentPanel] = []
        self._metadata: Dict[str, FileMetadata] = {}
        self._active_listeners: List[ActivePanelListener] = []
        self._window_listeners: List[WindowOpenedListener] = []

        self.window = QMainWindow()
        self.window.setWindowTitle("Shroud")
        self._tabs = QTabWidget()
        self._tabs.setDocumentMode(True)
        self._tabs.currentChanged.connect(self._handle_current_changed)
        self.window.setCentralWidget(self._tabs)
        self._toolbar = QToolBar("Visibility")
        self.window.addToolBar(self._toolbar)
        self._commands_menu = self.window.menuBar().addMenu("&Commands")
        self.main_window.install(QApplication.instance())

    # ------------------------------------------------------------------
    # Host interface
    # ------------------------------------------------------------------
    def iter_panels(self) -> Iterator[QtDocumentPanel]:
        yield from tuple(self._panels)

    def file_metadata(self, path: str) -> FileMetadata | None:
        return self._metadata.get(path)

    def add_active_listener(self, listener: ActivePanelListener) -> None:
        self._active_listeners.append(listener)

    def remove_active_listener(self, listener: ActivePanelListener) -> None:
        if listener in self._active_listeners:
            self._active_listeners.remove(listener)

    def add_window_listener(self, listener: WindowOpenedListener) -> None:
        self._window_listeners.append(listener)

    def remove_window_listener(self, listener: WindowOpenedListener) -> None:
        if listener in self._window_listeners:
            self._window_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Viewer operations
    # ------------------------------------------------------------------
    def current_blur_radius(self) -> float:
        return blur_radius(self._blur_level())

    def add_ribbon_action(self, title: str, callback: Callable[[], Any], *, tooltip: str | None = None) -> None:
        action = QAction(title, self.window)
        if tooltip:
            action.setToolTip(tooltip)
        action.triggered.connect(lambda _checked=False: callback())
        self._toolbar.addAction(action)

    def add_command(self, label: str, callback: Callable[[], Any], *, status_tip: str | None = None) -> None:
        action = QAction(label, self.window)
        if status_tip:
            action.setStatusTip(status_tip)
        action.triggered.connect(lambda _checked=False: callback())
        self._commands_menu.addAction(action)

    def command_labels(self) -> List[str]:
        return [action.text() for action in self._commands_menu.actions()]

    def open_file(self, path: Path) -> QtDocumentPanel:
        panel = QtDocumentPanel(self, path)
        # a panel is registered only once its file has been read
        panel.set_state({"file": str(path)})
        self._panels.append(panel)
        self._tabs.addTab(panel.widget, path.name)
        self._tabs.setCurrentWidget(panel.widget)
        return panel

    def cache_metadata(self, path: Path, text: str | None = None) -> None:
        key = relative_vault_path(path, self.vault_root)
        metadata = load_file_metadata(path) if text is None else extract_metadata(text)
        if metadata is None:
            self._metadata.pop(key, None)
        else:
            self._metadata[key] = metadata

    def rerender(self) -> None:
        for panel in self._panels:
            panel.container.render()

    def show(self) -> None:
        self.window.resize(960, 720)
        self.window.show()

    def _handle_current_changed(self, index: int) -> None:
        widget = self._tabs.widget(index)
        panel = next((item for item in self._panels if item.widget is widget), None)
        for listener in list(self._active_listeners):
            listener(panel)
