"""
Configuration for the battery OSD.

The module-level values are the defaults. A user file at
~/.config/battery-osd/config.yaml overrides any of them; load_settings()
merges the two and validates the result.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

import yaml

from battery_osd.errors import ConfigurationError
from battery_osd.state import AlertState, Thresholds

logger = logging.getLogger(__name__)

CONFIG_DIR: str = os.path.expanduser("~/.config/battery-osd")
CONFIG_PATH: str = os.path.join(CONFIG_DIR, "config.yaml")
STYLE_PATH: str = os.path.join(CONFIG_DIR, "style.css")

# Sampling interval in seconds (how often to read the battery)
POLL_INTERVAL: int = 30

# Battery threshold percentages
CRITICAL_THRESHOLD: int = 10  # at or below = critical
LOW_THRESHOLD: int = 20  # at or below = low
HEALTHY_THRESHOLD: int = 80  # at or above (on battery) = healthy

# Battery paths (will try these in order)
BATTERY_PATHS: list = [
    "/sys/class/power_supply/BAT0",
    "/sys/class/power_supply/BAT1",
]

# Seconds before an unchanged state is shown again; 0 = once per state entry
REPEAT_INTERVALS: Dict[str, int] = {
    "charging": 0,
    "healthy": 0,
    "discharging": 0,
    "low": 600,
    "critical": 300,
}

# How long the overlay stays on screen, in milliseconds
DISPLAY_TIMEOUTS: Dict[str, int] = {
    "charging": 3000,
    "healthy": 3000,
    "discharging": 3000,
    "low": 12000,
    "critical": 12000,
}

# Overlay placement
POSITION_HORIZONTAL: str = "center"  # left, center or right
POSITION_VERTICAL: str = "top"  # top or bottom
POSITION_PADDING: Dict[str, int] = {
    "top": 20,
    "bottom": 0,
    "left": 0,
    "right": 0,
}

HORIZONTAL_CHOICES = ("left", "center", "right")
VERTICAL_CHOICES = ("top", "bottom")


@dataclass(frozen=True)
class PositionSettings:
    horizontal: str = POSITION_HORIZONTAL
    vertical: str = POSITION_VERTICAL
    padding_top: int = POSITION_PADDING["top"]
    padding_bottom: int = POSITION_PADDING["bottom"]
    padding_left: int = POSITION_PADDING["left"]
    padding_right: int = POSITION_PADDING["right"]


@dataclass(frozen=True)
class Settings:
    """Validated settings, read-only for the lifetime of the process."""

    thresholds: Thresholds
    poll_interval: int = POLL_INTERVAL
    battery_path: Optional[str] = None
    repeat_intervals: Dict[AlertState, int] = field(default_factory=dict)
    display_timeouts: Dict[AlertState, int] = field(default_factory=dict)
    position: PositionSettings = field(default_factory=PositionSettings)
    commands: Dict[AlertState, str] = field(default_factory=dict)
    disabled: FrozenSet[AlertState] = frozenset()
    style_path: str = STYLE_PATH

    def display_timeout(self, state: AlertState) -> int:
        return self.display_timeouts.get(state, DISPLAY_TIMEOUTS[state.value])

    def is_disabled(self, state: AlertState) -> bool:
        return state in self.disabled


def _states(values: Mapping[str, int]) -> Dict[AlertState, int]:
    return {AlertState(name): value for name, value in values.items()}


def default_settings() -> Settings:
    """Settings built from the module defaults alone."""
    return Settings(
        thresholds=Thresholds(
            critical_percentage=CRITICAL_THRESHOLD,
            low_percentage=LOW_THRESHOLD,
            healthy_percentage=HEALTHY_THRESHOLD,
        ).validate(),
        repeat_intervals=_states(REPEAT_INTERVALS),
        display_timeouts=_states(DISPLAY_TIMEOUTS),
    )


def _read_yaml(path: str) -> Dict[str, Any]:
    """Read the user config file; a missing file means no overrides."""
    if not os.path.exists(path):
        logger.info("Config file not found: %s, using defaults", path)
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")
    return data


def _section(raw: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a mapping, got {value!r}")
    return value


def _int(value: Any, name: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"'{name}' must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"'{name}' must be at least {minimum}, got {value}")
    return value


def _state_values(raw: Mapping[str, Any], key: str, defaults: Mapping[str, int]) -> Dict[AlertState, int]:
    values = _states(defaults)
    for name, value in _section(raw, key).items():
        state = AlertState.from_name(str(name))
        values[state] = _int(value, f"{key}.{name}")
    return values


def _commands(raw: Mapping[str, Any]) -> Dict[AlertState, str]:
    commands = {}
    for key, command in _section(raw, "commands").items():
        name = str(key)
        if not name.startswith("on_"):
            raise ConfigurationError(f"Unknown command hook: {name!r} (expected on_<state>)")
        state = AlertState.from_name(name[len("on_"):])
        if command is None:
            continue
        if not isinstance(command, str):
            raise ConfigurationError(f"'commands.{name}' must be a string, got {command!r}")
        commands[state] = command
    return commands


def _position(raw: Mapping[str, Any]) -> PositionSettings:
    section = _section(raw, "position")
    horizontal = section.get("horizontal", POSITION_HORIZONTAL)
    vertical = section.get("vertical", POSITION_VERTICAL)
    if horizontal not in HORIZONTAL_CHOICES:
        raise ConfigurationError(
            f"'position.horizontal' must be one of {', '.join(HORIZONTAL_CHOICES)}, got {horizontal!r}"
        )
    if vertical not in VERTICAL_CHOICES:
        raise ConfigurationError(
            f"'position.vertical' must be one of {', '.join(VERTICAL_CHOICES)}, got {vertical!r}"
        )

    padding = {}
    for edge, default in POSITION_PADDING.items():
        key = f"padding_{edge}"
        padding[key] = _int(section.get(key, default), f"position.{key}")

    return PositionSettings(horizontal=horizontal, vertical=vertical, **padding)


def _disabled(raw: Mapping[str, Any]) -> FrozenSet[AlertState]:
    names = raw.get("disable") or []
    if not isinstance(names, list):
        raise ConfigurationError(f"'disable' must be a list of states, got {names!r}")
    return frozenset(AlertState.from_name(str(name)) for name in names)


KNOWN_KEYS = frozenset({
    "critical_threshold", "low_threshold", "healthy_threshold",
    "battery_path", "poll_interval_secs", "position", "timeouts",
    "repeat", "commands", "disable",
})


def load_settings(path: Optional[str] = None, style_path: Optional[str] = None) -> Settings:
    """
    Load and validate the user settings.

    Args:
        path: Config file to read. Defaults to CONFIG_PATH.
        style_path: Stylesheet path. Defaults to STYLE_PATH.

    Returns:
        The merged, validated settings.

    Raises:
        ConfigurationError: If the file is malformed or any value is invalid.
    """
    path = path or CONFIG_PATH
    raw = _read_yaml(path)

    for key in sorted(set(raw) - KNOWN_KEYS):
        logger.warning("Ignoring unknown config key %r in %s", key, path)

    thresholds = Thresholds(
        critical_percentage=raw.get("critical_threshold", CRITICAL_THRESHOLD),
        low_percentage=raw.get("low_threshold", LOW_THRESHOLD),
        healthy_percentage=raw.get("healthy_threshold", HEALTHY_THRESHOLD),
    ).validate()

    battery_path = raw.get("battery_path")
    if battery_path is not None and not isinstance(battery_path, str):
        raise ConfigurationError(f"'battery_path' must be a string, got {battery_path!r}")

    settings = Settings(
        thresholds=thresholds,
        poll_interval=_int(raw.get("poll_interval_secs", POLL_INTERVAL), "poll_interval_secs", minimum=1),
        battery_path=battery_path,
        repeat_intervals=_state_values(raw, "repeat", REPEAT_INTERVALS),
        display_timeouts=_state_values(raw, "timeouts", DISPLAY_TIMEOUTS),
        position=_position(raw),
        commands=_commands(raw),
        disabled=_disabled(raw),
        style_path=style_path or STYLE_PATH,
    )
    logger.debug("Settings loaded from %s: %s", path, settings)
    return settings


def load_css(path: Optional[str] = None) -> bytes:
    """
    Read the overlay stylesheet.

    Returns:
        The user stylesheet if one exists, otherwise the built-in default.
    """
    path = path or STYLE_PATH
    try:
        with open(path, "rb") as f:
            logger.debug("Loaded stylesheet from %s", path)
            return f.read()
    except FileNotFoundError:
        return DEFAULT_CSS.encode()
    except OSError as e:
        logger.warning("Could not read stylesheet %s (%s), using the default", path, e)
        return DEFAULT_CSS.encode()


# Default overlay styling; each window carries the alert state as a class
DEFAULT_CSS = """
window {
    background-color: transparent;
}
.osd-container {
    background-color: rgba(30, 30, 30, 0.9);
    border-radius: 12px;
    padding: 10px 18px;
}
.osd-icon {
    color: #ffffff;
}
.osd-label {
    color: #ffffff;
    font-size: 1.2em;
    font-weight: bold;
}
window.charging .osd-container,
window.healthy .osd-container {
    border: 2px solid #4caf50;
}
window.discharging .osd-container {
    border: 2px solid #9e9e9e;
}
window.low .osd-container {
    border: 2px solid #ff9800;
}
window.critical .osd-container {
    background-color: rgba(120, 20, 20, 0.95);
    border: 2px solid #f44336;
}
"""
