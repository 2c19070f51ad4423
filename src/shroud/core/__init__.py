"""Visibility levels, the reveal policy and the components that apply it."""

from .levels import Level, PanelKind, StyleClass
from .policy import ViewInfo, classify_panel, should_reveal

__all__ = ["Level", "PanelKind", "StyleClass", "ViewInfo", "classify_panel", "should_reveal"]
