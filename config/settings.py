"""State paths, pactl binary and manual defaults for default-device restore.

Everything here is read once from the environment at import time.  The save
interval is fixed: bursts of default-device changes (e.g. device enumeration
at boot) are coalesced into one write every DEFAULT_SAVE_INTERVAL seconds.
"""

import os

# Seconds between the first change after an idle period and the write.
DEFAULT_SAVE_INTERVAL = 5

# State directory.  First set variable wins; otherwise XDG state home.
STATE_DIR = os.environ.get("RESTORE_STATE_DIR") or os.environ.get("PULSE_STATE_PATH")
# An empty XDG_STATE_HOME counts as unset.
XDG_STATE_HOME = os.environ.get("XDG_STATE_HOME") or os.path.join(os.path.expanduser("~"), ".local", "state")
STATE_SUBDIR = "default-device-restore"

SINK_STATE_FILE = "default-sink"
SOURCE_STATE_FILE = "default-source"

# pactl – PulseAudio / PipeWire-Pulse command-line client
PACTL_BIN = os.environ.get("RESTORE_PACTL", "pactl")
PACTL_TIMEOUT_SEC = float(os.environ.get("RESTORE_PACTL_TIMEOUT", "5"))

# Manually configured defaults (equivalent of set-default-sink in default.pa).
# When set, the saved default for that kind is never restored.
MANUAL_DEFAULT_SINK = os.environ.get("RESTORE_MANUAL_SINK") or None
MANUAL_DEFAULT_SOURCE = os.environ.get("RESTORE_MANUAL_SOURCE") or None

LOG_LEVEL = os.environ.get("RESTORE_LOG_LEVEL", "INFO").upper()
