"""Shared test fixtures."""

import pytest

from battery_osd import config
from battery_osd.errors import PresentError, TelemetryError
from battery_osd.state import BatteryReading, Thresholds


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """Replays a scripted sequence of readings and errors."""

    def __init__(self, *samples) -> None:
        self.samples = list(samples)

    def push(self, *samples) -> None:
        self.samples.extend(samples)

    def read_battery(self) -> BatteryReading:
        sample = self.samples.pop(0)
        if isinstance(sample, Exception):
            raise sample
        percentage, charging = sample
        return BatteryReading(percentage=percentage, charging=charging)


class FakePresenter:
    def __init__(self) -> None:
        self.shown = []
        self.fail_next = 0

    def present(self, alert, style_data) -> None:
        if self.fail_next:
            self.fail_next -= 1
            raise PresentError("overlay unavailable")
        self.shown.append((alert, style_data))


@pytest.fixture
def thresholds():
    return Thresholds(critical_percentage=5, low_percentage=20, healthy_percentage=80)


@pytest.fixture
def settings(thresholds):
    return config.Settings(
        thresholds=thresholds,
        repeat_intervals=config.default_settings().repeat_intervals,
        display_timeouts=config.default_settings().display_timeouts,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def presenter():
    return FakePresenter()


@pytest.fixture
def transient_error():
    return TelemetryError("device busy")


@pytest.fixture
def battery_dir(tmp_path):
    """A fake sysfs battery directory; call it to set capacity and status."""
    path = tmp_path / "BAT0"
    path.mkdir()

    def write(capacity="50", status="Discharging"):
        if capacity is not None:
            (path / "capacity").write_text(f"{capacity}\n")
        if status is not None:
            (path / "status").write_text(f"{status}\n")
        return path

    return write
