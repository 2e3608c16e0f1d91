"""Console logging for the restore daemon."""

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# Daemon runs for days; keep the date in timestamps.
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: int | str) -> int:
    """Level number for a name like 'debug' or 'WARNING'; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: int | str = logging.INFO, verbose: bool = False) -> None:
    """Configure the root logger on stdout. verbose forces DEBUG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else resolve_level(level),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
    )
