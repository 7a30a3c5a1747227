"""
Battery state classification and notification gating.

The classifier maps a raw reading onto one of five alert states, and the
transition gate decides whether that state is worth showing to the user
right now.
"""

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from battery_osd.errors import ConfigurationError


class AlertState(enum.Enum):
    """The battery condition shown to the user."""

    CHARGING = "charging"
    HEALTHY = "healthy"
    DISCHARGING = "discharging"
    LOW = "low"
    CRITICAL = "critical"

    @property
    def urgency(self) -> int:
        """Rank from 0 (nothing to worry about) to 3 (critical)."""
        return _URGENCY[self]

    @classmethod
    def from_name(cls, name: str) -> "AlertState":
        """Look up a state by its configuration name, case-insensitively."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown battery state: {name!r}") from None


_URGENCY = {
    AlertState.CHARGING: 0,
    AlertState.HEALTHY: 0,
    AlertState.DISCHARGING: 1,
    AlertState.LOW: 2,
    AlertState.CRITICAL: 3,
}


@dataclass(frozen=True)
class BatteryReading:
    percentage: int
    charging: bool


@dataclass(frozen=True)
class Thresholds:
    """Battery percentage boundaries between alert states."""

    critical_percentage: int
    low_percentage: int
    healthy_percentage: int

    def validate(self) -> "Thresholds":
        """
        Check the threshold ordering.

        Returns:
            The thresholds themselves, so a loader can validate inline.

        Raises:
            ConfigurationError: If a value is outside 0-100 or the ordering
                critical < low <= healthy does not hold.
        """
        for name in ("critical_percentage", "low_percentage", "healthy_percentage"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if not 0 <= value <= 100:
                raise ConfigurationError(f"{name} must be between 0 and 100, got {value}")

        if self.critical_percentage >= self.low_percentage:
            raise ConfigurationError(
                f"critical threshold ({self.critical_percentage}%) must be below "
                f"low threshold ({self.low_percentage}%)"
            )
        if self.low_percentage > self.healthy_percentage:
            raise ConfigurationError(
                f"low threshold ({self.low_percentage}%) must not exceed "
                f"healthy threshold ({self.healthy_percentage}%)"
            )
        return self


def classify(reading: BatteryReading, thresholds: Thresholds) -> AlertState:
    """
    Map a battery reading to its alert state.

    Charging wins over any level. Otherwise the checks run from the most
    urgent band upwards and the low-side boundaries are inclusive.

    Args:
        reading: The latest battery reading.
        thresholds: Validated threshold percentages.

    Returns:
        The alert state for the reading.
    """
    if reading.charging:
        return AlertState.CHARGING
    if reading.percentage <= thresholds.critical_percentage:
        return AlertState.CRITICAL
    if reading.percentage <= thresholds.low_percentage:
        return AlertState.LOW
    if reading.percentage >= thresholds.healthy_percentage:
        return AlertState.HEALTHY
    return AlertState.DISCHARGING


@dataclass
class GateMemory:
    """What the gate last showed, and when."""

    last_emitted_state: Optional[AlertState] = None
    last_emitted_at: float = 0.0


def should_notify(
    new_state: AlertState,
    now: float,
    memory: GateMemory,
    min_interval: Optional[float],
) -> bool:
    """
    Decide whether new_state should be shown and record it if so.

    A first observation and any change of state always notify. An unchanged
    state notifies again once min_interval seconds have passed since it was
    last shown; a missing or zero interval means it is shown only once per
    entry into the state.

    Args:
        new_state: The freshly classified state.
        now: Current monotonic time in seconds.
        memory: Gate memory, updated in place on a positive verdict.
        min_interval: Repeat interval for new_state in seconds.

    Returns:
        True if the user should be notified.
    """
    if memory.last_emitted_state is None or new_state != memory.last_emitted_state:
        notify = True
    elif min_interval:
        notify = now - memory.last_emitted_at >= min_interval
    else:
        notify = False

    if notify:
        memory.last_emitted_state = new_state
        memory.last_emitted_at = now
    return notify


class TransitionGate:
    """
    Stateful wrapper around should_notify with per-state repeat intervals.

    The gate owns its memory; nothing else reads or writes it.
    """

    def __init__(self, repeat_intervals: Dict[AlertState, float]) -> None:
        self.repeat_intervals: Dict[AlertState, float] = dict(repeat_intervals)
        self.memory: GateMemory = GateMemory()
        self._previous: Optional[Tuple[Optional[AlertState], float]] = None

    def should_notify(self, state: AlertState, now: float) -> bool:
        snapshot = (self.memory.last_emitted_state, self.memory.last_emitted_at)
        notify = should_notify(state, now, self.memory, self.repeat_intervals.get(state))
        if notify:
            self._previous = snapshot
        return notify

    def revert(self) -> None:
        """Forget the last positive verdict so the next tick tries again."""
        if self._previous is None:
            return
        self.memory.last_emitted_state, self.memory.last_emitted_at = self._previous
        self._previous = None
