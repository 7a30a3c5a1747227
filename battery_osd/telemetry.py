"""
Battery telemetry read from the Linux sysfs power-supply class.
"""

import logging
import os
from typing import Iterable, Optional

from battery_osd import config
from battery_osd.errors import TelemetryError
from battery_osd.state import BatteryReading

logger = logging.getLogger(__name__)

# sysfs status values that mean the charger is connected
CHARGING_STATUSES = ("charging", "full")


def find_battery_path(candidates: Optional[Iterable[str]] = None) -> str:
    """
    Find the battery directory among the candidate paths.

    Args:
        candidates: Paths to try in order. Defaults to config.BATTERY_PATHS.

    Returns:
        The first candidate that exists.

    Raises:
        TelemetryError: A permanent error if none of the candidates exist.
    """
    paths = list(candidates) if candidates is not None else list(config.BATTERY_PATHS)
    for path in paths:
        if os.path.exists(path):
            logger.debug("Using battery at %s", path)
            return path
    raise TelemetryError(
        "No battery found (tried {})".format(", ".join(paths) or "nothing"),
        permanent=True,
    )


class SysfsBatterySource:
    """Reads capacity and charging status from one sysfs battery directory."""

    def __init__(self, battery_path: str) -> None:
        self.battery_path = battery_path

    @classmethod
    def discover(cls, battery_path: Optional[str] = None) -> "SysfsBatterySource":
        """Build a source for the configured path, or the first battery found."""
        candidates = [battery_path] if battery_path else None
        return cls(find_battery_path(candidates))

    def _read_battery_file(self, filename: str) -> str:
        filepath = os.path.join(self.battery_path, filename)
        try:
            with open(filepath, "r") as f:
                return f.read().strip()
        except (IOError, OSError, UnicodeDecodeError) as e:
            raise TelemetryError(f"Failed to read {filepath}: {e}") from e

    def read_battery(self) -> BatteryReading:
        """
        Take one battery sample.

        Returns:
            The current percentage (0-100) and charging flag.

        Raises:
            TelemetryError: A transient error if a file cannot be read or parsed.
        """
        capacity = self._read_battery_file("capacity")
        try:
            percentage = int(float(capacity))
        except (ValueError, OverflowError):
            raise TelemetryError(f"Failed to parse capacity: {capacity!r}") from None

        status = self._read_battery_file("status")
        charging = status.lower() in CHARGING_STATUSES

        return BatteryReading(percentage=max(0, min(100, percentage)), charging=charging)
