"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..core.levels import Level, parse_level

__all__ = [
    "Settings",
    "SettingsStore",
    "BLUR_LEVEL_MIN",
    "BLUR_LEVEL_MAX",
    "parse_private_dirs",
    "coerce_idle_timeout",
    "clamp_blur_level",
    "normalize_value",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".shroud"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
BLUR_LEVEL_MIN = 0.1
BLUR_LEVEL_MAX = 1.5
_DEFAULT_BLUR_LEVEL = 0.3
_DISABLED_TIMEOUT = -1.0
_ENV_OVERRIDES: Mapping[str, str] = {
    "SHROUD_BLUR_ON_STARTUP": "blur_on_startup",
    "SHROUD_PRIVATE_DIRS": "private_dirs",
    "SHROUD_PRIVATE_NOTE_MARKER": "private_note_marker",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "SHROUD_HOVER_TO_REVEAL": "hover_to_reveal",
    "SHROUD_REVEAL_UNDER_CARET": "reveal_under_caret",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "SHROUD_BLUR_LEVEL": "blur_level",
    "SHROUD_IDLE_TIMEOUT": "blur_on_idle_timeout_seconds",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    blur_on_startup: Level = Level.HIDE_PRIVATE
    blur_level: float = _DEFAULT_BLUR_LEVEL
    blur_on_idle_timeout_seconds: float = _DISABLED_TIMEOUT
    hover_to_reveal: bool = True
    reveal_under_caret: bool = False
    private_dirs: str = ""
    private_note_marker: str = "#private"

    @property
    def private_dir_prefixes(self) -> tuple[str, ...]:
        return parse_private_dirs(self.private_dirs)

    @property
    def idle_lock_enabled(self) -> bool:
        return self.blur_on_idle_timeout_seconds >= 0


def parse_private_dirs(raw: str | None) -> tuple[str, ...]:
    """Split the comma-separated directory list, dropping blank entries.

    A blank entry would otherwise be a prefix of every path.
    """

    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def coerce_idle_timeout(value: Any) -> float:
    """Parse an idle timeout, returning ``-1`` (disabled) for unparseable input."""

    if isinstance(value, bool):
        return _DISABLED_TIMEOUT
    try:
        parsed = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return _DISABLED_TIMEOUT
    if math.isnan(parsed):
        return _DISABLED_TIMEOUT
    return parsed


def clamp_blur_level(value: Any) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return _DEFAULT_BLUR_LEVEL
    if math.isnan(parsed):
        return _DEFAULT_BLUR_LEVEL
    return max(BLUR_LEVEL_MIN, min(BLUR_LEVEL_MAX, parsed))


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, merging stored fields over the defaults."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            settings = self._apply_overrides(settings, data, source="disk")
            LOGGER.debug("Settings loaded from %s: %s", self._path, sorted(data))

        version_mismatch = bool(payload) and payload.get("version") != _SETTINGS_VERSION
        if version_mismatch:
            try:
                self.save(settings)
            except OSError as exc:  # pragma: no cover - defensive guard
                LOGGER.warning("Failed to migrate settings payload: %s", exc)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = self._serialize(settings)
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        data["blur_on_startup"] = settings.blur_on_startup.value
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object; ignoring", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = normalize_value(key, value)
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid float", env_name, value
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def normalize_value(name: str, value: Any) -> Any:
    """Coerce a raw stored or user-supplied value into the field's type."""

    if name == "blur_on_startup":
        level = parse_level(value, default=None)
        if level is None:
            LOGGER.warning(
                "Unknown startup level %r; defaulting to %s", value, Level.HIDE_PRIVATE.value
            )
            return Level.HIDE_PRIVATE
        return level
    if name == "blur_level":
        return clamp_blur_level(value)
    if name == "blur_on_idle_timeout_seconds":
        return coerce_idle_timeout(value)
    if name in ("hover_to_reveal", "reveal_under_caret"):
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_VALUES
        return bool(value)
    if name in ("private_dirs", "private_note_marker"):
        if isinstance(value, (list, tuple)):
            return ",".join(str(item) for item in value)
        return str(value)
    return value


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)}
    result: Dict[str, Any] = {}
    for key, value in payload.items():
        if key not in allowed:
            continue
        result[key] = value
    return result
