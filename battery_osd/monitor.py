"""
The sampling loop: read the battery, classify, gate, present.
"""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from battery_osd.config import Settings
from battery_osd.errors import PresentError, TelemetryError
from battery_osd.state import AlertState, BatteryReading, TransitionGate, classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Alert:
    """A notification ready to be drawn."""

    state: AlertState
    percentage: int
    timeout_ms: int

    @property
    def message(self) -> str:
        return f"{self.state.value.capitalize()} {self.percentage}%"


class BatterySource(Protocol):
    def read_battery(self) -> BatteryReading:
        ...


class Presenter(Protocol):
    def present(self, alert: Alert, style_data: bytes) -> None:
        ...


class BatteryMonitor:
    """
    Drives one telemetry source through the classifier and transition gate.

    tick() is called on a fixed interval by the main loop. It never raises
    for telemetry or presenter failures: those are logged and the next tick
    carries on.
    """

    def __init__(
        self,
        settings: Settings,
        source: BatterySource,
        presenter: Presenter,
        style_data: bytes = b"",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.source = source
        self.presenter = presenter
        self.style_data = style_data
        self.clock = clock
        self.gate = TransitionGate(settings.repeat_intervals)

    def tick(self) -> Optional[Alert]:
        """
        Run one sample through the pipeline.

        Returns:
            The alert that was presented, or None if nothing was shown.
        """
        try:
            reading = self.source.read_battery()
        except TelemetryError as e:
            logger.warning("Skipping battery check: %s", e)
            return None

        state = classify(reading, self.settings.thresholds)
        if not self.gate.should_notify(state, self.clock()):
            logger.debug("No notification for %s at %d%%", state.value, reading.percentage)
            return None

        if self.settings.is_disabled(state):
            logger.debug("Notifications for %s are disabled", state.value)
            return None

        alert = Alert(
            state=state,
            percentage=reading.percentage,
            timeout_ms=self.settings.display_timeout(state),
        )
        try:
            self.presenter.present(alert, self.style_data)
        except PresentError as e:
            # retry on the next tick instead of waiting for the repeat interval
            logger.error("Could not show %r: %s", alert.message, e)
            self.gate.revert()
            return None

        logger.info("Battery %s (urgency %d)", alert.message, state.urgency)
        self.run_hook(state)
        return alert

    def run_hook(self, state: AlertState) -> Optional[threading.Thread]:
        """Start the user's command for this state, if one is configured."""
        command = self.settings.commands.get(state)
        if not command:
            return None
        thread = threading.Thread(target=_run_command, args=(command,), daemon=True)
        thread.start()
        return thread


def _run_command(command: str) -> None:
    try:
        result = subprocess.run(["sh", "-c", command], start_new_session=True)
    except OSError as e:
        logger.error("Failed to execute command %r: %s", command, e)
        return
    if result.returncode != 0:
        logger.warning("Command %r exited with status %d", command, result.returncode)
