"""Default sink/source lookup and control (pactl).

DefaultDeviceLookup is what the restore module needs from the audio server;
PactlDeviceLookup implements it against PulseAudio or PipeWire-Pulse.
"""

import logging
import subprocess
from enum import Enum
from typing import Protocol

from audio.errors import DeviceQueryError
from config import settings

logger = logging.getLogger(__name__)


class DeviceKind(Enum):
    """Which default is meant: output (sink) or input (source)."""

    SINK = "sink"
    SOURCE = "source"

    @property
    def state_file(self) -> str:
        return settings.SINK_STATE_FILE if self is DeviceKind.SINK else settings.SOURCE_STATE_FILE

    @property
    def label(self) -> str:
        return f"default {self.value}"


class DefaultDeviceLookup(Protocol):
    """Registry operations the restore module consumes from the audio server."""

    def has_manual_default(self, kind: DeviceKind) -> bool: ...

    def resolve(self, name: str, kind: DeviceKind) -> bool: ...

    def set_default(self, name: str, kind: DeviceKind) -> bool: ...

    # Raises DeviceQueryError when the server cannot be asked; None means no default.
    def current_default_name(self, kind: DeviceKind) -> str | None: ...


class PactlDeviceLookup:
    """DefaultDeviceLookup backed by the pactl command-line client."""

    def __init__(
        self,
        manual_sink: str | None = None,
        manual_source: str | None = None,
        pactl: str = settings.PACTL_BIN,
        timeout: float = settings.PACTL_TIMEOUT_SEC,
    ) -> None:
        self._manual = {DeviceKind.SINK: manual_sink, DeviceKind.SOURCE: manual_source}
        self._pactl = pactl
        self._timeout = timeout

    def _run(self, *args: str) -> str | None:
        """Run pactl with args; stdout on success, None on any failure."""
        try:
            out = subprocess.run(
                [self._pactl, *args],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError:
            logger.warning("%s not found; is PulseAudio/PipeWire installed?", self._pactl)
            return None
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.debug("pactl %s failed: %s", " ".join(args), e)
            return None
        if out.returncode != 0:
            logger.debug("pactl %s exited %d: %s", " ".join(args), out.returncode, out.stderr.strip())
            return None
        return out.stdout

    def has_manual_default(self, kind: DeviceKind) -> bool:
        return self._manual[kind] is not None

    def list_names(self, kind: DeviceKind) -> list[str]:
        """Names of all sinks or sources (first tab-separated column of 'list short')."""
        out = self._run("list", "short", f"{kind.value}s")
        if not out:
            return []
        names = []
        for line in out.splitlines():
            cols = line.split("\t")
            if len(cols) >= 2 and cols[1]:
                names.append(cols[1])
        return names

    def resolve(self, name: str, kind: DeviceKind) -> bool:
        return name in self.list_names(kind)

    def set_default(self, name: str, kind: DeviceKind) -> bool:
        if self._run(f"set-default-{kind.value}", name) is None:
            logger.warning("Could not set %s to '%s'", kind.label, name)
            return False
        return True

    def current_default_name(self, kind: DeviceKind) -> str | None:
        out = self._run(f"get-default-{kind.value}")
        if out is None:
            raise DeviceQueryError(f"Could not query {kind.label} from {self._pactl}")
        return out.strip() or None

    def apply_manual_defaults(self) -> None:
        """Set configured manual defaults on the server (done before restore runs)."""
        for kind, name in self._manual.items():
            if name is not None:
                logger.info("Setting manually configured %s '%s'", kind.label, name)
                self.set_default(name, kind)
