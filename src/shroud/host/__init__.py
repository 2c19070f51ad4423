"""Host-side models and the interfaces the visibility engine consumes."""

from .metadata import FileMetadata, collect_tags, describe_panel
from .workspace import AuxiliaryPanel, ClassList, DocumentPanel, HostWindowModel, PanelWorkspace

__all__ = [
    "AuxiliaryPanel",
    "ClassList",
    "DocumentPanel",
    "FileMetadata",
    "HostWindowModel",
    "PanelWorkspace",
    "collect_tags",
    "describe_panel",
]
