"""Interception of panel content switches.

Each panel's ``set_state`` is wrapped once. The wrapper blanks every revealed
panel synchronously before the switch runs and reports completion exactly once
after the switch settles, whether it finished inline, asynchronously or with an
error. Errors are never swallowed: synchronous failures re-raise to the caller
and asynchronous ones surface when the returned future is awaited.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import weakref
from typing import Any, Callable, Dict

__all__ = ["ViewStateHook", "SwitchCallback", "is_hooked"]

LOGGER = logging.getLogger(__name__)

SwitchCallback = Callable[[Any], None]

_HOOK_MARKER = "__shroud_switch_hook__"
_SWITCH_ATTR = "set_state"


def is_hooked(panel: Any) -> bool:
    """Return ``True`` when ``panel.set_state`` already carries a hook wrapper.

    Unknown or exotic panel objects are reported as unhooked.
    """

    try:
        entry = getattr(panel, _SWITCH_ATTR, None)
        return bool(entry is not None and getattr(entry, _HOOK_MARKER, False))
    except Exception:  # pragma: no cover - exotic descriptors
        LOGGER.debug("Unable to probe switch hook on %r", panel, exc_info=True)
        return False


class ViewStateHook:
    """Installs and drives switch wrappers for host panels."""

    def __init__(self, on_before: SwitchCallback, on_after: SwitchCallback) -> None:
        self._on_before = on_before
        self._on_after = on_after
        self._registry: Dict[int, "weakref.ReferenceType[Any]"] = {}
        self._inflight: Dict[int, asyncio.Future[Any]] = {}

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------
    def install(self, panel: Any) -> bool:
        """Wrap ``panel.set_state``; returns ``False`` when nothing was installed."""

        if self.is_installed(panel) or is_hooked(panel):
            return False
        original = getattr(panel, _SWITCH_ATTR, None)
        if not callable(original):
            return False

        key = id(panel)

        def _hooked_set_state(*args: Any, **kwargs: Any) -> Any:
            return self._intercept(panel, key, original, args, kwargs)

        setattr(_hooked_set_state, _HOOK_MARKER, True)
        _hooked_set_state.__wrapped__ = original  # type: ignore[attr-defined]
        try:
            setattr(panel, _SWITCH_ATTR, _hooked_set_state)
        except (AttributeError, TypeError):
            LOGGER.debug("Panel %r does not accept a switch hook; leaving it unhooked", panel)
            return False
        self._track(panel, key)
        LOGGER.debug("Installed switch hook on %r", panel)
        return True

    def is_installed(self, panel: Any) -> bool:
        ref = self._registry.get(id(panel))
        if ref is None:
            # panels without weakref support are only known by their marker
            return is_hooked(panel)
        # ids are recycled; only trust the entry while it still names this panel
        return ref() is panel

    @property
    def tracked_count(self) -> int:
        return len(self._registry)

    def _track(self, panel: Any, key: int) -> None:
        def _forget(ref: "weakref.ReferenceType[Any]") -> None:
            if self._registry.get(key) is ref:
                del self._registry[key]

        try:
            self._registry[key] = weakref.ref(panel, _forget)
        except TypeError:
            LOGGER.debug("Panel %r does not support weak references; tracking by marker only", panel)

    def uninstall(self, panel: Any) -> None:
        entry = getattr(panel, _SWITCH_ATTR, None)
        if entry is not None and getattr(entry, _HOOK_MARKER, False):
            try:
                delattr(panel, _SWITCH_ATTR)
            except AttributeError:  # pragma: no cover - defensive
                pass
        self._registry.pop(id(panel), None)
        self._inflight.pop(id(panel), None)

    # ------------------------------------------------------------------
    # Interception
    # ------------------------------------------------------------------
    def _intercept(
        self,
        panel: Any,
        key: int,
        original: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> Any:
        self._on_before(panel)

        previous = self._inflight.get(key)
        if previous is not None and not previous.done():
            LOGGER.debug("Queueing switch on %r behind an in-flight switch", panel)
            future = asyncio.ensure_future(self._run_after(previous, panel, original, args, kwargs))
        else:
            try:
                result = original(*args, **kwargs)
            except BaseException:
                self._settled(panel)
                raise
            if not inspect.isawaitable(result):
                self._settled(panel)
                return result
            future = asyncio.ensure_future(result)

        self._inflight[key] = future
        future.add_done_callback(lambda done: self._future_settled(panel, key, done))
        return future

    async def _run_after(
        self,
        previous: asyncio.Future[Any],
        panel: Any,
        original: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> Any:
        # asyncio.wait does not raise the earlier switch's error; its own caller owns it
        await asyncio.wait([previous])
        self._on_before(panel)
        result = original(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _future_settled(self, panel: Any, key: int, future: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]
        self._settled(panel)

    def _settled(self, panel: Any) -> None:
        self._on_after(panel)

