"""Exceptions raised by default-device restore."""


class RestoreError(Exception):
    """Base class for default-device restore errors."""


class PathResolutionError(RestoreError):
    """State directory could not be determined or created. Fatal at init."""


class LoadError(RestoreError):
    """State file exists but could not be read."""


class SaveError(RestoreError):
    """State file could not be written."""


class DeviceQueryError(RestoreError):
    """The audio server could not be asked for its current default."""
