"""
Battery OSD

A small on-screen display that pops up when the laptop battery changes state
(charging, healthy, low, critical, discharging).
"""

__version__ = "1.0.0"
