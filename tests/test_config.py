"""Configuration loader tests."""

import pytest
import yaml

from battery_osd import config
from battery_osd.errors import ConfigurationError
from battery_osd.state import AlertState, Thresholds


@pytest.fixture
def write_config(tmp_path):
    """Write a config.yaml built from a dict (or raw text) and return its path."""
    def write(data):
        path = tmp_path / "config.yaml"
        if isinstance(data, str):
            path.write_text(data)
        else:
            with open(path, "w") as f:
                yaml.dump(data, f)
        return str(path)

    return write


class TestDefaults:
    def test_missing_file_uses_defaults(self, tmp_path):
        settings = config.load_settings(str(tmp_path / "missing.yaml"))
        assert settings == config.default_settings()

    def test_default_values(self):
        settings = config.default_settings()
        assert settings.thresholds == Thresholds(
            critical_percentage=10, low_percentage=20, healthy_percentage=80)
        assert settings.poll_interval == 30
        assert settings.battery_path is None
        assert settings.repeat_intervals[AlertState.CRITICAL] == 300
        assert settings.repeat_intervals[AlertState.HEALTHY] == 0
        assert settings.display_timeout(AlertState.LOW) == 12000
        assert settings.display_timeout(AlertState.CHARGING) == 3000
        assert settings.position == config.PositionSettings()
        assert settings.commands == {}
        assert settings.disabled == frozenset()

    def test_empty_file_uses_defaults(self, write_config):
        settings = config.load_settings(write_config(""))
        assert settings.thresholds == config.default_settings().thresholds


class TestLoadSettings:
    def test_full_file(self, write_config):
        path = write_config({
            "critical_threshold": 5,
            "low_threshold": 15,
            "healthy_threshold": 90,
            "battery_path": "/sys/class/power_supply/BAT1",
            "poll_interval_secs": 60,
            "position": {"horizontal": "right", "vertical": "bottom", "padding_right": 12},
            "timeouts": {"critical": 20000},
            "repeat": {"Low": 120, "healthy": 3600},
            "commands": {"on_critical": "paplay alarm.oga"},
            "disable": ["discharging"],
        })
        settings = config.load_settings(path, style_path="/tmp/style.css")

        assert settings.thresholds == Thresholds(
            critical_percentage=5, low_percentage=15, healthy_percentage=90)
        assert settings.battery_path == "/sys/class/power_supply/BAT1"
        assert settings.poll_interval == 60
        assert settings.position.horizontal == "right"
        assert settings.position.vertical == "bottom"
        assert settings.position.padding_right == 12
        assert settings.position.padding_top == 20
        assert settings.display_timeout(AlertState.CRITICAL) == 20000
        assert settings.display_timeout(AlertState.LOW) == 12000
        assert settings.repeat_intervals[AlertState.LOW] == 120
        assert settings.repeat_intervals[AlertState.HEALTHY] == 3600
        assert settings.repeat_intervals[AlertState.CRITICAL] == 300
        assert settings.commands == {AlertState.CRITICAL: "paplay alarm.oga"}
        assert settings.is_disabled(AlertState.DISCHARGING)
        assert not settings.is_disabled(AlertState.CRITICAL)
        assert settings.style_path == "/tmp/style.css"

    def test_unknown_key_is_ignored(self, write_config, caplog):
        settings = config.load_settings(write_config({"colour": "red"}))
        assert settings.thresholds == config.default_settings().thresholds
        assert "colour" in caplog.text

    def test_null_command_is_skipped(self, write_config):
        settings = config.load_settings(write_config({"commands": {"on_low": None}}))
        assert settings.commands == {}

    @pytest.mark.parametrize("data, message", [
        ({"critical_threshold": 30}, "critical threshold"),
        ({"low_threshold": 90}, "low threshold"),
        ({"critical_threshold": 20, "low_threshold": 20}, "critical threshold"),
        ({"low_threshold": "20"}, "integer"),
        ({"poll_interval_secs": 0}, "poll_interval_secs"),
        ({"repeat": {"full": 10}}, "full"),
        ({"repeat": [1, 2]}, "mapping"),
        ({"timeouts": {"low": -1}}, "timeouts.low"),
        ({"commands": {"critical": "x"}}, "on_<state>"),
        ({"commands": {"on_low": 5}}, "commands.on_low"),
        ({"position": {"horizontal": "middle"}}, "position.horizontal"),
        ({"position": {"vertical": "left"}}, "position.vertical"),
        ({"disable": "low"}, "disable"),
        ({"disable": ["sleepy"]}, "sleepy"),
        ({"battery_path": 0}, "battery_path"),
    ])
    def test_invalid_values(self, write_config, data, message):
        with pytest.raises(ConfigurationError, match=message):
            config.load_settings(write_config(data))

    def test_malformed_yaml(self, write_config):
        with pytest.raises(ConfigurationError, match="parse"):
            config.load_settings(write_config("critical_threshold: [5\n"))

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_bytes(b"low_threshold: \xff\n")
        with pytest.raises(ConfigurationError, match="parse"):
            config.load_settings(str(path))

    def test_top_level_must_be_mapping(self, write_config):
        with pytest.raises(ConfigurationError, match="mapping"):
            config.load_settings(write_config("- 5\n- 20\n"))


class TestLoadCss:
    def test_user_stylesheet(self, tmp_path):
        path = tmp_path / "style.css"
        path.write_bytes(b".osd-label { color: red; }")
        assert config.load_css(str(path)) == b".osd-label { color: red; }"

    def test_default_stylesheet(self, tmp_path):
        assert config.load_css(str(tmp_path / "missing.css")) == config.DEFAULT_CSS.encode()

    def test_default_stylesheet_covers_every_state(self):
        for state in AlertState:
            assert f"window.{state.value}" in config.DEFAULT_CSS
