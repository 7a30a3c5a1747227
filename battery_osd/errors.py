"""Exceptions raised by the battery OSD."""


class BatteryOsdError(Exception):
    """Base class for all battery OSD errors."""


class ConfigurationError(BatteryOsdError):
    """Invalid thresholds or a malformed configuration file."""


class TelemetryError(BatteryOsdError):
    """
    Battery telemetry could not be read.

    A permanent error means there is no battery to watch at all; anything
    else is treated as a transient read failure.
    """

    def __init__(self, message: str, permanent: bool = False) -> None:
        super().__init__(message)
        self.permanent = permanent


class PresentError(BatteryOsdError):
    """The overlay could not be shown."""
