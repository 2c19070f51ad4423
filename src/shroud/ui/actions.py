"""Commands and ribbon entries mapping 1:1 onto visibility levels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping

from ..core.levels import Level

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..core.controller import LevelController

__all__ = [
    "WindowAction",
    "LevelCommandSpec",
    "LEVEL_COMMANDS",
    "build_level_actions",
    "PaletteCommand",
    "build_palette_commands",
]


@dataclass(slots=True)
class WindowAction:
    """Represents a command exposed through the palette and the ribbon."""

    name: str
    text: str
    shortcut: str | None = None
    status_tip: str | None = None
    icon: str | None = None
    ribbon_title: str | None = None
    callback: Callable[[], Any] | None = None

    def trigger(self) -> None:
        """Invoke the registered callback, if available."""

        if self.callback is not None:
            self.callback()


@dataclass(frozen=True, slots=True)
class LevelCommandSpec:
    command_id: str
    level: Level
    name: str
    ribbon_title: str
    icon: str


LEVEL_COMMANDS: tuple[LevelCommandSpec, ...] = (
    LevelCommandSpec(
        command_id="shroud-hide-all",
        level=Level.HIDE_ALL,
        name="Shroud - hide all",
        ribbon_title="Hide all",
        icon="eye-closed",
    ),
    LevelCommandSpec(
        command_id="shroud-hide-private",
        level=Level.HIDE_PRIVATE,
        name="Shroud - hide files in folders marked as private",
        ribbon_title="Reveal non-private",
        icon="eye-slash",
    ),
    LevelCommandSpec(
        command_id="shroud-reveal-headlines",
        level=Level.REVEAL_HEADLINES,
        name="Shroud - reveal headlines only, keeping body content hidden",
        ribbon_title="Reveal headlines only",
        icon="eye-glasses",
    ),
    LevelCommandSpec(
        command_id="shroud-reveal-all",
        level=Level.REVEAL_ALL,
        name="Shroud - do not hide anything",
        ribbon_title="Reveal all",
        icon="eye",
    ),
)


def build_level_actions(controller: "LevelController") -> dict[str, WindowAction]:
    """Return one action per level, each setting that level and recomputing."""

    actions: dict[str, WindowAction] = {}
    for spec in LEVEL_COMMANDS:
        actions[spec.command_id] = WindowAction(
            name=spec.command_id,
            text=spec.name,
            status_tip=spec.level.label,
            icon=spec.icon,
            ribbon_title=spec.ribbon_title,
            callback=_level_setter(controller, spec.level),
        )
    return actions


def _level_setter(controller: "LevelController", level: Level) -> Callable[[], None]:
    def _apply() -> None:
        controller.set_level(level, source="command")

    return _apply


@dataclass(slots=True)
class PaletteCommand:
    """Lightweight descriptor for command palette entries."""

    command_id: str
    label: str
    detail: str
    shortcut: str | None
    callback: Callable[[], Any] | None


def build_palette_commands(actions: Mapping[str, WindowAction]) -> list[PaletteCommand]:
    """Derive palette entries from actions, sorted case-insensitively by label."""

    entries: list[PaletteCommand] = []
    for name, action in actions.items():
        entries.append(
            PaletteCommand(
                command_id=name,
                label=action.text or name.replace("-", " ").title(),
                detail=action.status_tip or "",
                shortcut=action.shortcut,
                callback=action.callback,
            )
        )
    entries.sort(key=lambda entry: entry.label.casefold())
    return entries
