"""Single-line state files holding the saved default sink and source names.

File format: the device's internal name followed by a newline; an empty line
means no default was recorded.  Writes truncate in place (no atomic rename),
so a crash mid-write can leave an empty file, which loads as "no default".
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from audio.devices import DeviceKind
from audio.errors import LoadError, PathResolutionError, SaveError
from config import settings

logger = logging.getLogger(__name__)

# Only this many characters of the first line are significant.
MAX_NAME_LEN = 255


def resolve_state_dir(state_dir: str | Path | None = None) -> Path:
    """Per-user state directory, created (0700) if missing."""
    if state_dir is None:
        state_dir = settings.STATE_DIR or os.path.join(settings.XDG_STATE_HOME, settings.STATE_SUBDIR)
    if not state_dir:
        raise PathResolutionError("No state directory configured")
    path = Path(state_dir).expanduser()
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise PathResolutionError(f"Cannot create state directory {path}: {e}") from e
    return path


def resolve_state_path(name: str, state_dir: str | Path | None = None) -> Path:
    """Path to the state file called name inside the state directory."""
    return resolve_state_dir(state_dir) / name


@dataclass
class ModuleState:
    """All mutable state of one running restore module."""

    sink_path: Path
    source_path: Path
    dirty: bool = False
    pending: Any = None  # scheduler handle while a save is armed


class PersistenceStore:
    """Reads and writes the default-sink and default-source files."""

    def __init__(self, sink_path: str | Path, source_path: str | Path) -> None:
        self.sink_path = Path(sink_path)
        self.source_path = Path(source_path)

    @classmethod
    def for_state(cls, state: ModuleState) -> "PersistenceStore":
        return cls(state.sink_path, state.source_path)

    def path_for(self, kind: DeviceKind) -> Path:
        return self.sink_path if kind is DeviceKind.SINK else self.source_path

    def load(self, kind: DeviceKind) -> str | None:
        """Saved name for kind, or None if the file is missing or its first line is empty.

        Raises LoadError for any failure other than a missing file.
        """
        path = self.path_for(kind)
        try:
            with open(path, encoding="utf-8") as f:
                line = f.readline(MAX_NAME_LEN)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(f"Failed to load {kind.label} from {path}: {e}") from e
        return line.rstrip("\r\n") or None

    def save(self, kind: DeviceKind, name: str | None) -> None:
        """Write name (empty line for None) to the state file. Raises SaveError."""
        path = self.path_for(kind)
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(f"{name or ''}\n")
        except OSError as e:
            raise SaveError(f"Failed to save {kind.label} to {path}: {e}") from e
        logger.debug("Saved %s '%s' to %s", kind.label, name or "", path)
