"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

VALID_WEIGHT_CHANGE_METHODS = ("net", "trend")


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".bob"


def _default_db_path() -> Path:
    """Return the default database path."""
    return _default_config_dir() / "bob.db"


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: Path = field(default_factory=_default_db_path)


@dataclass
class CalibrationConfig:
    """Constants for the calorie target calibration."""

    window_days: int = 14
    min_weight_entries: int = 3
    min_logged_days: int = 7
    kcal_per_kg: float = 7700.0  # energy content of 1 kg body-mass change
    kg_per_lb: float = 0.453592
    tolerance_kg: float = 0.2
    high_confidence_kg: float = 0.5
    max_decrease_kcal: int = 200
    max_increase_kcal: int = 150
    weight_change_method: str = "net"  # "net" or "trend"
    trend_smoothing: float = 0.1

    def validate(self) -> None:
        """Raise ValueError if any constant is out of range."""
        positive = {
            "window_days": self.window_days,
            "kcal_per_kg": self.kcal_per_kg,
            "kg_per_lb": self.kg_per_lb,
            "max_decrease_kcal": self.max_decrease_kcal,
            "max_increase_kcal": self.max_increase_kcal,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ValueError(f"calibration.{name} must be positive, got {value}")
        if self.min_weight_entries < 2:
            raise ValueError(
                "calibration.min_weight_entries must be at least 2, "
                f"got {self.min_weight_entries}"
            )
        if self.min_logged_days < 1:
            raise ValueError(
                f"calibration.min_logged_days must be at least 1, got {self.min_logged_days}"
            )
        if self.tolerance_kg < 0:
            raise ValueError(
                f"calibration.tolerance_kg must not be negative, got {self.tolerance_kg}"
            )
        if self.weight_change_method not in VALID_WEIGHT_CHANGE_METHODS:
            raise ValueError(
                f"calibration.weight_change_method must be one of "
                f"{VALID_WEIGHT_CHANGE_METHODS}, got '{self.weight_change_method}'"
            )
        if not 0 < self.trend_smoothing <= 1:
            raise ValueError(
                f"calibration.trend_smoothing must be in (0, 1], got {self.trend_smoothing}"
            )


@dataclass
class ReviewConfig:
    """Thresholds for deciding whether a calibration is worth running."""

    interval_days: int = 14
    min_weight_logs: int = 7
    min_food_logs: int = 20
    plateau_days: int = 10
    plateau_min_entries: int = 5
    plateau_threshold_kg: float = 0.5


@dataclass
class ScheduleConfig:
    """Weekly calibration job schedule (cron fields)."""

    day_of_week: str = "sun"
    hour: int = 0
    minute: int = 0
    timezone: str = "UTC"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: Optional[Path] = None


@dataclass
class Settings:
    """Main application settings."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.bob/config.yaml

        Returns:
            Settings instance

        Raises:
            ValueError: If a calibration constant is invalid
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        # Parse database config
        if "database" in data:
            db_data = data["database"] or {}
            if "path" in db_data:
                settings.database.path = Path(db_data["path"]).expanduser()

        # Parse calibration constants
        if "calibration" in data:
            cal_data = data["calibration"] or {}
            cal = settings.calibration
            for key in ("window_days", "min_weight_entries", "min_logged_days",
                        "max_decrease_kcal", "max_increase_kcal"):
                if key in cal_data:
                    setattr(cal, key, int(cal_data[key]))
            for key in ("kcal_per_kg", "kg_per_lb", "tolerance_kg",
                        "high_confidence_kg", "trend_smoothing"):
                if key in cal_data:
                    setattr(cal, key, float(cal_data[key]))
            if "weight_change_method" in cal_data:
                cal.weight_change_method = str(cal_data["weight_change_method"])

        # Parse review thresholds
        if "review" in data:
            review_data = data["review"] or {}
            review = settings.review
            for key in ("interval_days", "min_weight_logs", "min_food_logs",
                        "plateau_days", "plateau_min_entries"):
                if key in review_data:
                    setattr(review, key, int(review_data[key]))
            if "plateau_threshold_kg" in review_data:
                review.plateau_threshold_kg = float(review_data["plateau_threshold_kg"])

        # Parse schedule
        if "schedule" in data:
            sched_data = data["schedule"] or {}
            if "day_of_week" in sched_data:
                settings.schedule.day_of_week = str(sched_data["day_of_week"])
            if "hour" in sched_data:
                settings.schedule.hour = int(sched_data["hour"])
            if "minute" in sched_data:
                settings.schedule.minute = int(sched_data["minute"])
            if "timezone" in sched_data:
                settings.schedule.timezone = str(sched_data["timezone"])

        # Parse logging
        if "logging" in data:
            log_data = data["logging"] or {}
            if "level" in log_data:
                settings.logging.level = str(log_data["level"])
            if log_data.get("file"):
                settings.logging.file = Path(log_data["file"]).expanduser()

        settings.calibration.validate()
        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.bob/config.yaml
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        cal = self.calibration
        review = self.review
        data = {
            "database": {
                "path": str(self.database.path),
            },
            "calibration": {
                "window_days": cal.window_days,
                "min_weight_entries": cal.min_weight_entries,
                "min_logged_days": cal.min_logged_days,
                "kcal_per_kg": cal.kcal_per_kg,
                "kg_per_lb": cal.kg_per_lb,
                "tolerance_kg": cal.tolerance_kg,
                "high_confidence_kg": cal.high_confidence_kg,
                "max_decrease_kcal": cal.max_decrease_kcal,
                "max_increase_kcal": cal.max_increase_kcal,
                "weight_change_method": cal.weight_change_method,
                "trend_smoothing": cal.trend_smoothing,
            },
            "review": {
                "interval_days": review.interval_days,
                "min_weight_logs": review.min_weight_logs,
                "min_food_logs": review.min_food_logs,
                "plateau_days": review.plateau_days,
                "plateau_min_entries": review.plateau_min_entries,
                "plateau_threshold_kg": review.plateau_threshold_kg,
            },
            "schedule": {
                "day_of_week": self.schedule.day_of_week,
                "hour": self.schedule.hour,
                "minute": self.schedule.minute,
                "timezone": self.schedule.timezone,
            },
            "logging": {
                "level": self.logging.level,
                "file": str(self.logging.file) if self.logging.file else None,
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load(config_path)
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the global settings instance (None resets to lazy loading)."""
    global _settings
    _settings = settings
