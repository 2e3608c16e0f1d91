"""Server event bus and the subscription that feeds the save scheduler.

EventBus is an in-process publish/subscribe bus keyed by event category
(the PulseAudio subscription facility: "server", "sink", "source", ...).
PactlEventMonitor turns `pactl subscribe` output into bus events.
All handlers run on the event loop thread, one at a time.
"""

import asyncio
import itertools
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from config import settings

logger = logging.getLogger(__name__)

# Fired when the server's defaults (default sink/source) change.
SERVER_DEFAULTS_CHANGED = "server"

_SUBSCRIBE_LINE = re.compile(r"Event '(?P<action>[\w-]+)' on (?P<category>[\w-]+)(?: #(?P<index>\d+))?")


@dataclass(frozen=True)
class BusEvent:
    """One server notification: action ('new', 'change', 'remove') on a category."""

    category: str
    action: str = "change"
    index: int | None = None


Handler = Callable[[BusEvent], None]


class Bus(Protocol):
    def subscribe(self, category: str, handler: Handler) -> Any: ...

    def unsubscribe(self, token: Any) -> None: ...


class EventBus:
    """Synchronous category-filtered publish/subscribe."""

    def __init__(self) -> None:
        self._subs: dict[int, tuple[str, Handler]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, category: str, handler: Handler) -> int:
        token = next(self._tokens)
        self._subs[token] = (category, handler)
        return token

    def unsubscribe(self, token: int) -> None:
        self._subs.pop(token, None)

    def publish(self, event: BusEvent) -> int:
        """Deliver event to every matching handler. Returns number of handlers run."""
        delivered = 0
        for category, handler in list(self._subs.values()):
            if category != event.category:
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Handler for %s event failed", event.category)
            delivered += 1
        return delivered


class ChangeSubscriber:
    """Registers a handler for default-changed notifications on a bus."""

    def __init__(self, bus: Bus, handler: Handler, category: str = SERVER_DEFAULTS_CHANGED) -> None:
        self._bus = bus
        self._handler = handler
        self._category = category
        self._token: Any = None

    @property
    def registered(self) -> bool:
        return self._token is not None

    def register(self) -> Any:
        if self._token is None:
            self._token = self._bus.subscribe(self._category, self._handler)
        return self._token

    def unregister(self) -> None:
        """Idempotent; safe if register() never ran."""
        if self._token is None:
            return
        self._bus.unsubscribe(self._token)
        self._token = None


def parse_subscribe_line(line: str) -> BusEvent | None:
    """Parse one `pactl subscribe` line, e.g. "Event 'change' on server #4294967295"."""
    m = _SUBSCRIBE_LINE.search(line)
    if not m:
        return None
    index = m.group("index")
    return BusEvent(category=m.group("category"), action=m.group("action"), index=int(index) if index else None)


class PactlEventMonitor:
    """Publishes `pactl subscribe` events onto an EventBus from the asyncio loop."""

    def __init__(self, bus: EventBus, pactl: str = settings.PACTL_BIN) -> None:
        self._bus = bus
        self._pactl = pactl
        self._proc: asyncio.subprocess.Process | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> bool:
        """Spawn pactl subscribe. Returns False if it cannot be started."""
        if self.running:
            return True
        try:
            self._proc = await asyncio.create_subprocess_exec(
                self._pactl,
                "subscribe",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning("Could not start %s subscribe: %s", self._pactl, e)
            return False
        self._task = asyncio.create_task(self._read_loop(self._proc.stdout))
        logger.debug("Watching server events via %s subscribe", self._pactl)
        return True

    async def _read_loop(self, stream: asyncio.StreamReader) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                logger.warning("%s subscribe exited; no longer tracking default changes", self._pactl)
                break
            event = parse_subscribe_line(raw.decode("utf-8", errors="replace"))
            if event is not None:
                self._bus.publish(event)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._proc is not None:
            if self._proc.returncode is None:
                try:
                    self._proc.terminate()
                except ProcessLookupError:
                    pass
            await self._proc.wait()
            self._proc = None
