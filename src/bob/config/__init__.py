"""Configuration management."""

from __future__ import annotations

from bob.config.settings import (
    CalibrationConfig,
    ReviewConfig,
    ScheduleConfig,
    Settings,
    get_settings,
    reload_settings,
    set_settings,
)

__all__ = [
    "CalibrationConfig",
    "ReviewConfig",
    "ScheduleConfig",
    "Settings",
    "get_settings",
    "reload_settings",
    "set_settings",
]
