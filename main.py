#!/usr/bin/env python3
"""Default device restore – remember the default sink/source across audio server restarts.

Entry: parse args, restore saved defaults, save changes until SIGINT/SIGTERM.
"""

import argparse
import asyncio
import logging
import signal
import sys

from audio.debounce import AsyncioScheduler
from audio.devices import DeviceKind, PactlDeviceLookup
from audio.errors import DeviceQueryError, LoadError, PathResolutionError
from audio.events import EventBus, PactlEventMonitor
from audio.restore import ModuleContext, init, shutdown
from audio.state_store import PersistenceStore, resolve_state_dir
from config import settings
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Restore the default sink and source at startup and save them when they change"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show state directory, saved and current defaults, then exit",
    )
    return parser.parse_args(argv)


def _make_lookup() -> PactlDeviceLookup:
    return PactlDeviceLookup(settings.MANUAL_DEFAULT_SINK, settings.MANUAL_DEFAULT_SOURCE)


def _handle_dry_run() -> int:
    try:
        state_dir = resolve_state_dir()
    except PathResolutionError as e:
        logger.error("%s", e)
        return 1
    logger.info("State directory: %s", state_dir)
    store = PersistenceStore(state_dir / DeviceKind.SINK.state_file, state_dir / DeviceKind.SOURCE.state_file)
    lookup = _make_lookup()
    for kind in DeviceKind:
        try:
            saved = store.load(kind)
        except LoadError as e:
            logger.warning("%s", e)
            saved = None
        try:
            current = lookup.current_default_name(kind) or "-"
        except DeviceQueryError as e:
            logger.warning("%s", e)
            current = "?"
        logger.info(
            "%s: saved=%s current=%s manual=%s",
            kind.label,
            saved or "-",
            current,
            lookup.has_manual_default(kind),
        )
    return 0


async def run() -> int:
    """Load the module against the local server and keep it running until signalled."""
    loop = asyncio.get_running_loop()
    bus = EventBus()
    monitor = PactlEventMonitor(bus)
    lookup = _make_lookup()
    lookup.apply_manual_defaults()

    context = ModuleContext(lookup=lookup, scheduler=AsyncioScheduler(loop), bus=bus)
    if not init(context):
        return 1

    if not await monitor.start():
        logger.warning("Default changes will not be saved (no event source)")

    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    logger.info("Watching default sink/source (save interval %ss)", settings.DEFAULT_SAVE_INTERVAL)
    try:
        await stop.wait()
    finally:
        await monitor.stop()
        shutdown(context)
    logger.info("Stopped cleanly.")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(settings.LOG_LEVEL, verbose=args.verbose)
    if args.dry_run:
        return _handle_dry_run()
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
