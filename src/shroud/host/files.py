"""Metadata extraction for files opened by the bundled viewer host.

Hosts normally ship their own metadata cache; the desktop viewer builds one
from the files it opens: the YAML frontmatter block and inline ``#tags``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Mapping

from markdown_it import MarkdownIt
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .metadata import FileMetadata

__all__ = ["extract_metadata", "load_file_metadata", "split_frontmatter"]

LOGGER = logging.getLogger(__name__)

_FRONTMATTER_DELIMITER = "---"
_INLINE_TAG = re.compile(r"(?<![\w#&/])#([\w][\w/-]*)", re.UNICODE)
_MARKDOWN: MarkdownIt | None = None


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Return ``(frontmatter_source, body)``; frontmatter is ``None`` when absent."""

    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return None, text
    for index in range(1, len(lines)):
        if lines[index].strip() == _FRONTMATTER_DELIMITER:
            return "".join(lines[1:index]), "".join(lines[index + 1 :])
    return None, text


def extract_metadata(text: str) -> FileMetadata:
    source, body = split_frontmatter(text)
    frontmatter = _parse_frontmatter(source) if source is not None else None
    return FileMetadata(body_tags=_scan_inline_tags(body), frontmatter=frontmatter)


def load_file_metadata(path: Path) -> FileMetadata | None:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.debug("Unable to read %s for metadata: %s", path, exc)
        return None
    return extract_metadata(text)


def _parse_frontmatter(source: str) -> Mapping[str, Any] | None:
    yaml = YAML(typ="safe")
    try:
        payload = yaml.load(source)
    except YAMLError as exc:
        LOGGER.warning("Ignoring malformed frontmatter: %s", exc)
        return None
    if not isinstance(payload, Mapping):
        return None
    return dict(payload)


def _markdown() -> MarkdownIt:
    global _MARKDOWN
    if _MARKDOWN is None:
        _MARKDOWN = MarkdownIt("commonmark").enable("table")
    return _MARKDOWN


def _scan_inline_tags(body: str) -> tuple[str, ...]:
    """Collect `#tags` from prose; code blocks and code spans never contribute."""

    tags: list[str] = []
    for token in _markdown().parse(body):
        if token.type != "inline" or not token.children:
            continue
        for child in token.children:
            if child.type != "text":
                continue
            for match in _INLINE_TAG.finditer(child.content):
                tag = f"#{match.group(1)}"
                if tag not in tags:
                    tags.append(tag)
    return tuple(tags)
