"""Restore the default sink/source at startup and save it when it changes.

Controller owns one ModuleState for the module's lifetime.  Startup order
matters: saved defaults are restored before the change subscription is
registered, so the notifications caused by our own set_default() never
trigger a save.

init()/shutdown() are the host-facing lifecycle entry points; they keep the
controller on an explicit ModuleContext instead of module globals.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from audio.debounce import DebounceScheduler, Scheduler
from audio.devices import DefaultDeviceLookup, DeviceKind
from audio.errors import LoadError, PathResolutionError
from audio.events import Bus, ChangeSubscriber
from audio.state_store import ModuleState, PersistenceStore, resolve_state_path
from config import settings

logger = logging.getLogger(__name__)


class Controller:
    """Wires store, lookup, debounce scheduler and subscription together."""

    def __init__(
        self,
        lookup: DefaultDeviceLookup,
        scheduler: Scheduler,
        bus: Bus,
        state_dir: str | Path | None = None,
        interval: float = settings.DEFAULT_SAVE_INTERVAL,
    ) -> None:
        self.lookup = lookup
        self.scheduler = scheduler
        self.bus = bus
        self.state_dir = state_dir
        self.interval = interval
        self.state: ModuleState | None = None
        self.store: PersistenceStore | None = None
        self.debounce: DebounceScheduler | None = None
        self.subscriber: ChangeSubscriber | None = None

    def start(self) -> None:
        """Resolve state paths, restore saved defaults, subscribe to changes.

        Raises PathResolutionError if the state directory is unusable.
        """
        self.state = ModuleState(
            sink_path=resolve_state_path(DeviceKind.SINK.state_file, self.state_dir),
            source_path=resolve_state_path(DeviceKind.SOURCE.state_file, self.state_dir),
        )
        self.store = PersistenceStore.for_state(self.state)
        self.debounce = DebounceScheduler(self.state, self.store, self.lookup, self.scheduler, self.interval)

        self.restore()

        self.subscriber = ChangeSubscriber(self.bus, self.debounce.on_change)
        self.subscriber.register()

    def restore(self) -> None:
        for kind in DeviceKind:
            self._restore_kind(kind)

    def _restore_kind(self, kind: DeviceKind) -> None:
        # Never overwrite manually configured settings.
        if self.lookup.has_manual_default(kind):
            logger.info("Manually configured %s, not overwriting.", kind.label)
            return
        try:
            name = self.store.load(kind)
        except LoadError as e:
            logger.warning("%s", e)
            return
        if name is None:
            logger.info("No previous %s setting, ignoring.", kind.label)
        elif self.lookup.resolve(name, kind):
            if self.lookup.set_default(name, kind):
                logger.info("Restored %s '%s'.", kind.label, name)
            else:
                logger.warning("Failed to restore %s '%s'.", kind.label, name)
        else:
            logger.info("Saved %s '%s' not present, not restoring %s setting.", kind.label, name, kind.label)

    def stop(self) -> None:
        """Flush a pending change, then unsubscribe and drop the timer. Idempotent."""
        try:
            if self.debounce is not None:
                self.debounce.flush()
        except Exception:
            logger.exception("Final save of default sink/source failed")
        finally:
            if self.subscriber is not None:
                self.subscriber.unregister()
                self.subscriber = None
            if self.debounce is not None:
                self.debounce.cancel()
                self.debounce = None
            self.store = None
            self.state = None


@dataclass
class ModuleContext:
    """What the host hands to init()/shutdown(): collaborators plus the running controller."""

    lookup: DefaultDeviceLookup
    scheduler: Scheduler
    bus: Bus
    state_dir: str | Path | None = None
    controller: Controller | None = None


def init(context: ModuleContext) -> bool:
    """Load the module. Returns False (after full teardown) if setup fails."""
    if context.controller is not None:
        logger.error("Default device restore is already loaded")
        return False
    context.controller = Controller(context.lookup, context.scheduler, context.bus, context.state_dir)
    try:
        context.controller.start()
    except PathResolutionError as e:
        logger.error("Failed to initialise default device restore: %s", e)
        shutdown(context)
        return False
    except Exception:
        logger.exception("Failed to initialise default device restore")
        shutdown(context)
        return False
    return True


def shutdown(context: ModuleContext) -> None:
    """Unload the module. Safe on a partially initialised or already stopped context."""
    controller = context.controller
    if controller is None:
        return
    try:
        controller.stop()
    finally:
        context.controller = None
