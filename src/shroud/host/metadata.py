"""Per-document metadata supplied by the host and its reduction to a tag set."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from ..core.policy import ViewInfo

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .protocols import HostPanel

__all__ = ["FileMetadata", "collect_tags", "parent_path", "describe_panel"]


@dataclass(frozen=True, slots=True)
class FileMetadata:
    """Precomputed metadata for a file, as cached by the host.

    Either field may be missing; a file without a frontmatter block or without
    inline tags is normal and must not be treated as an error.
    """

    body_tags: tuple[str, ...] | None = None
    frontmatter: Mapping[str, Any] | None = None


def collect_tags(metadata: FileMetadata | None) -> frozenset[str]:
    """Union of body tags and frontmatter ``tags``; empty when nothing is known."""

    if metadata is None:
        return frozenset()
    tags: set[str] = set()
    tags.update(_clean(metadata.body_tags or ()))
    frontmatter = metadata.frontmatter
    if isinstance(frontmatter, Mapping):
        raw = frontmatter.get("tags")
        if isinstance(raw, str):
            # YAML allows a single scalar or a comma separated string.
            tags.update(_clean(raw.split(",")))
        elif isinstance(raw, Iterable):
            tags.update(_clean(raw))
    return frozenset(tags)


def _clean(values: Iterable[Any]) -> Iterable[str]:
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            yield text


def parent_path(file_path: str | None) -> str | None:
    """Folder of ``file_path`` in vault-relative POSIX form (``""`` for the root)."""

    if file_path is None:
        return None
    return posixpath.dirname(file_path.replace("\\", "/"))


def describe_panel(panel: "HostPanel", lookup: Any) -> ViewInfo:
    """Build the policy view of ``panel`` using ``lookup.file_metadata``."""

    if not getattr(panel, "is_document_panel", False):
        return ViewInfo.non_document()
    path = getattr(panel, "file_path", None)
    if path is None:
        return ViewInfo(is_document_panel=True)
    metadata = lookup.file_metadata(path)
    return ViewInfo(
        is_document_panel=True,
        tags=collect_tags(metadata),
        parent_path=parent_path(path),
    )
