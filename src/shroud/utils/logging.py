"""Logging setup for the shroud viewer: one rotating file plus the console."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["LOG_DIR_ENV", "setup_logging", "default_log_dir", "get_log_path"]

LOG_DIR_ENV = "SHROUD_LOG_DIR"
LOG_FILE_NAME = "shroud.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# The Qt loop and the markdown tokenizer are chatty at DEBUG.
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "qasync", "markdown_it")

_log_path: Path | None = None


def default_log_dir() -> Path:
    """``$SHROUD_LOG_DIR`` when set, else ``~/.shroud/logs``."""

    override = os.environ.get(LOG_DIR_ENV, "").strip()
    base = Path(override) if override else Path.home() / ".shroud" / "logs"
    return base.expanduser()


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route the root logger to ``shroud.log`` (and stderr when ``console``).

    Repeated calls are no-ops returning the active path unless ``force`` is set.
    """

    global _log_path
    if _log_path is not None and not force:
        return _log_path

    directory = Path(log_dir).expanduser() if log_dir else default_log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / LOG_FILE_NAME

    logging.basicConfig(level=level, handlers=_build_handlers(path, level, console, max_bytes, backup_count), force=True)
    logging.captureWarnings(True)
    quiet_level = max(level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    _log_path = path
    return path


def get_log_path() -> Path | None:
    return _log_path


def _build_handlers(
    path: Path, level: int, console: bool, max_bytes: int, backup_count: int
) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers
