"""Debounced saving of the default sink/source.

Changes arrive in bursts (device enumeration at boot, a user clicking through
devices).  The first change after an idle period arms a single timer; further
changes while it is armed only mark the state dirty.  When the timer fires,
the defaults current at that moment are written and the scheduler goes idle.

Two states: Idle (state.pending is None) and Armed (one pending handle).
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from audio.devices import DefaultDeviceLookup, DeviceKind
from audio.errors import DeviceQueryError, SaveError
from audio.state_store import ModuleState, PersistenceStore
from config import settings

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """One-shot timer capability of the host's event loop."""

    def schedule_once(self, delay: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class AsyncioScheduler:
    """Scheduler on an asyncio event loop (loop.call_later)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule_once(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class DebounceScheduler:
    """Coalesces change notifications into one delayed save."""

    def __init__(
        self,
        state: ModuleState,
        store: PersistenceStore,
        lookup: DefaultDeviceLookup,
        scheduler: Scheduler,
        interval: float = settings.DEFAULT_SAVE_INTERVAL,
    ) -> None:
        self._state = state
        self._store = store
        self._lookup = lookup
        self._scheduler = scheduler
        self._interval = interval

    @property
    def armed(self) -> bool:
        return self._state.pending is not None

    @property
    def dirty(self) -> bool:
        return self._state.dirty

    def on_change(self, event: Any = None) -> None:
        """Bus handler: mark dirty and arm the save timer unless already armed."""
        self._state.dirty = True
        if self._state.pending is None:
            self._state.pending = self._scheduler.schedule_once(self._interval, self._on_timer)
            logger.debug("Default device changed; saving in %ss", self._interval)

    def _on_timer(self) -> None:
        try:
            self.flush()
        finally:
            self._state.pending = None

    def flush(self) -> bool:
        """Save both defaults if dirty. Returns True if a save was attempted."""
        if not self._state.dirty:
            return False
        try:
            for kind in DeviceKind:
                try:
                    name = self._lookup.current_default_name(kind)
                except DeviceQueryError as e:
                    # A failed query leaves the saved file untouched.
                    logger.warning("%s; not saving %s", e, kind.label)
                    continue
                try:
                    self._store.save(kind, name)
                except SaveError as e:
                    logger.warning("%s", e)
        finally:
            # No retry: the next change re-arms the timer.
            self._state.dirty = False
        return True

    def cancel(self) -> None:
        """Drop the pending timer without saving."""
        if self._state.pending is not None:
            self._scheduler.cancel(self._state.pending)
            self._state.pending = None
