#!/usr/bin/env python3
"""
Battery OSD

A transient on-screen overlay for Wayland compositors using GTK3 and
gtk-layer-shell. Watches the battery and pops up when it starts charging,
runs low, turns critical, or is unplugged.
"""

import argparse
import dataclasses
import logging
import os
import signal
import sys
from typing import List, Optional

import gi
gi.require_version('Gtk', '3.0')
gi.require_version('Gdk', '3.0')
gi.require_version('GtkLayerShell', '0.1')
from gi.repository import Gdk, GLib, Gtk, GtkLayerShell

from battery_osd import __version__, config
from battery_osd.config import PositionSettings, Settings
from battery_osd.errors import ConfigurationError, PresentError, TelemetryError
from battery_osd.monitor import Alert, BatteryMonitor
from battery_osd.state import AlertState
from battery_osd.telemetry import SysfsBatterySource

logger = logging.getLogger(__name__)

ICON_NAMES = {
    AlertState.CHARGING: "battery-level-50-charging-symbolic",
    AlertState.HEALTHY: "battery-good-symbolic",
    AlertState.DISCHARGING: "battery-good-symbolic",
    AlertState.LOW: "battery-level-20-symbolic",
    AlertState.CRITICAL: "battery-level-10-symbolic",
}


class OSDWindow:
    """
    Borderless overlay on the layer-shell overlay layer.

    It is built hidden and reused for every alert: present() swaps the
    icon, text and state class, shows it, and arms a one-shot timer that
    hides it again.
    """

    def __init__(self, position: PositionSettings) -> None:
        self.window = Gtk.Window()
        self._hide_source_id: Optional[int] = None
        self._css_provider: Optional[Gtk.CssProvider] = None
        self._style_data: Optional[bytes] = None

        GtkLayerShell.init_for_window(self.window)
        GtkLayerShell.set_layer(self.window, GtkLayerShell.Layer.OVERLAY)
        GtkLayerShell.set_keyboard_interactivity(self.window, False)
        GtkLayerShell.set_exclusive_zone(self.window, 0)
        self._apply_position(position)

        # Transparent background so only the rounded container is drawn
        self.window.set_app_paintable(True)
        visual = self.window.get_screen().get_rgba_visual()
        if visual:
            self.window.set_visual(visual)

        container = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=10)
        container.set_halign(Gtk.Align.CENTER)
        container.set_valign(Gtk.Align.CENTER)
        container.get_style_context().add_class("osd-container")

        self.icon = Gtk.Image.new_from_icon_name("battery-symbolic", Gtk.IconSize.LARGE_TOOLBAR)
        self.icon.set_pixel_size(24)
        self.icon.get_style_context().add_class("osd-icon")
        container.pack_start(self.icon, False, False, 0)

        self.label = Gtk.Label()
        self.label.get_style_context().add_class("osd-label")
        container.pack_start(self.label, False, False, 0)

        self.window.add(container)
        container.show_all()

    def _apply_position(self, position: PositionSettings) -> None:
        """Anchor the window to the configured screen edges."""
        for edge in (GtkLayerShell.Edge.LEFT, GtkLayerShell.Edge.RIGHT,
                     GtkLayerShell.Edge.TOP, GtkLayerShell.Edge.BOTTOM):
            GtkLayerShell.set_anchor(self.window, edge, False)
            GtkLayerShell.set_margin(self.window, edge, 0)

        # Centered windows are anchored to neither side
        if position.horizontal == "left":
            GtkLayerShell.set_anchor(self.window, GtkLayerShell.Edge.LEFT, True)
            GtkLayerShell.set_margin(self.window, GtkLayerShell.Edge.LEFT, position.padding_left)
        elif position.horizontal == "right":
            GtkLayerShell.set_anchor(self.window, GtkLayerShell.Edge.RIGHT, True)
            GtkLayerShell.set_margin(self.window, GtkLayerShell.Edge.RIGHT, position.padding_right)

        if position.vertical == "bottom":
            GtkLayerShell.set_anchor(self.window, GtkLayerShell.Edge.BOTTOM, True)
            GtkLayerShell.set_margin(self.window, GtkLayerShell.Edge.BOTTOM, position.padding_bottom)
        else:
            GtkLayerShell.set_anchor(self.window, GtkLayerShell.Edge.TOP, True)
            GtkLayerShell.set_margin(self.window, GtkLayerShell.Edge.TOP, position.padding_top)

    def _apply_css(self, style_data: bytes) -> None:
        """Install the stylesheet for the whole screen, replacing the previous one."""
        if style_data == self._style_data:
            return

        screen = Gdk.Screen.get_default()
        if screen is None:
            raise PresentError("No default screen to attach the stylesheet to")
        if self._css_provider is not None:
            Gtk.StyleContext.remove_provider_for_screen(screen, self._css_provider)

        css_provider = Gtk.CssProvider()
        try:
            css_provider.load_from_data(style_data)
        except GLib.Error as e:
            raise PresentError(f"Invalid stylesheet: {e.message}") from e
        Gtk.StyleContext.add_provider_for_screen(
            screen,
            css_provider,
            Gtk.STYLE_PROVIDER_PRIORITY_APPLICATION
        )
        self._css_provider = css_provider
        self._style_data = style_data

    def present(self, alert: Alert, style_data: bytes) -> None:
        """
        Show an alert and schedule it to disappear.

        Args:
            alert: What to show and for how long.
            style_data: Stylesheet bytes, installed when they change.

        Raises:
            PresentError: If the stylesheet is rejected or GTK fails.
        """
        self._apply_css(style_data)

        try:
            self.icon.set_from_icon_name(ICON_NAMES[alert.state], Gtk.IconSize.LARGE_TOOLBAR)
            self.label.set_text(alert.message)

            style_context = self.window.get_style_context()
            for state in AlertState:
                style_context.remove_class(state.value)
            style_context.add_class(alert.state.value)
            self.window.show()
        except GLib.Error as e:
            raise PresentError(e.message) from e

        if self._hide_source_id is not None:
            GLib.source_remove(self._hide_source_id)
        self._hide_source_id = GLib.timeout_add(alert.timeout_ms, self._on_hide_timeout)

    def _on_hide_timeout(self) -> bool:
        self._hide_source_id = None
        self.window.hide()
        return False  # one-shot


class BatteryOSD:
    """Wires the sysfs source, the monitor and the overlay into the GLib loop."""

    def __init__(self, settings: Settings, source: SysfsBatterySource) -> None:
        self.settings = settings
        self.overlay = OSDWindow(settings.position)
        self.monitor = BatteryMonitor(
            settings,
            source,
            self.overlay,
            style_data=config.load_css(settings.style_path),
        )
        self.update_source_id: Optional[int] = None

    def start(self) -> None:
        # first sample right away, then on the interval
        self.monitor.tick()
        self.update_source_id = GLib.timeout_add_seconds(self.settings.poll_interval, self._periodic_update)

    def _periodic_update(self) -> bool:
        """
        Periodic update callback.

        Returns:
            True to keep the timeout running.
        """
        self.monitor.tick()
        return True


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="battery-osd",
        description="Show an on-screen overlay when the battery changes state.",
    )
    parser.add_argument("-c", "--config", default=config.CONFIG_PATH,
                        help="Path to config.yaml (default: %(default)s)")
    parser.add_argument("-s", "--style", default=config.STYLE_PATH,
                        help="Path to style.css (default: %(default)s)")
    parser.add_argument("-i", "--interval", type=int,
                        help="Override the polling interval in seconds")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log every battery check")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _quit(*_args) -> bool:
    Gtk.main_quit()
    return False


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the battery OSD."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    # Check if running on a system with a display
    if not os.environ.get('DISPLAY') and not os.environ.get('WAYLAND_DISPLAY'):
        logger.error("No display server found. This application requires X11 or Wayland.")
        return 1

    try:
        settings = config.load_settings(args.config, args.style)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    if args.interval is not None:
        if args.interval < 1:
            logger.error("Invalid configuration: --interval must be at least 1 second")
            return 2
        settings = dataclasses.replace(settings, poll_interval=args.interval)

    try:
        source = SysfsBatterySource.discover(settings.battery_path)
    except TelemetryError as e:
        logger.error("%s", e)
        return 1

    logger.info(
        "Watching %s every %ds (critical %d%%, low %d%%, healthy %d%%)",
        source.battery_path,
        settings.poll_interval,
        settings.thresholds.critical_percentage,
        settings.thresholds.low_percentage,
        settings.thresholds.healthy_percentage,
    )

    osd = BatteryOSD(settings, source)
    for signum in (signal.SIGINT, signal.SIGTERM):
        GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signum, _quit)
    osd.start()

    try:
        Gtk.main()
    except KeyboardInterrupt:
        logger.info("Exiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
