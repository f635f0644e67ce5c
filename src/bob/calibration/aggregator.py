"""Collect one user's weight and food data for a calibration window.

Weights are converted to kilograms here, so the estimator only ever sees
one unit.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from bob.config.settings import CalibrationConfig
from bob.tracking.ema import trend_change
from bob.tracking.models import FoodEntry, WeightEntry, to_kg, utc
from bob.tracking.queries import FoodQueries, WeightQueries


@dataclass
class CalibrationWindow:
    """Normalized data for one user over the lookback window."""

    user_id: str
    start: datetime
    end: datetime
    weights: list[tuple[datetime, float]] = field(default_factory=list)  # (timestamp, kg)
    daily_calories: dict[date, float] = field(default_factory=dict)  # date -> kcal
    meals_logged: int = 0

    @property
    def weight_entries(self) -> int:
        return len(self.weights)

    @property
    def logged_days(self) -> int:
        return len(self.daily_calories)

    @property
    def avg_daily_calories(self) -> float:
        """Average intake over the days that have at least one logged meal."""
        if not self.daily_calories:
            return 0.0
        return sum(self.daily_calories.values()) / len(self.daily_calories)

    @property
    def start_weight(self) -> float:
        return self.weights[0][1]

    @property
    def end_weight(self) -> float:
        return self.weights[-1][1]

    def weight_change(self, method: str = "net", smoothing: float = 0.1) -> float:
        """
        Observed weight change in kg (positive = gain).

        Args:
            method: "net" for last minus first reading, "trend" for the
                    change of the exponentially smoothed trend
            smoothing: Smoothing factor for the trend method
        """
        if len(self.weights) < 2:
            return 0.0
        if method == "trend":
            readings = [(moment.date(), kg) for moment, kg in self.weights]
            return trend_change(readings, smoothing)
        if method == "net":
            return self.end_weight - self.start_weight
        raise ValueError(f"Unknown weight change method: {method}")


def build_window(
    user_id: str,
    weights: list[WeightEntry],
    foods: list[FoodEntry],
    start: datetime,
    end: datetime,
    kg_per_lb: float,
) -> CalibrationWindow:
    """
    Normalize raw log entries into a CalibrationWindow.

    Args:
        user_id: Owner of the entries
        weights: Weight entries in any mix of kg and lbs
        foods: Food entries; calories are summed per date
        start: Window start
        end: Window end
        kg_per_lb: Pound to kilogram multiplier

    Returns:
        CalibrationWindow with a chronological kg series and a date-sorted
        map of total calories per day
    """
    ordered = sorted(weights, key=lambda e: (utc(e.timestamp), e.log_id or 0))
    series = [(utc(e.timestamp), to_kg(e.weight, e.unit, kg_per_lb)) for e in ordered]

    per_day: dict[date, float] = {}
    for entry in foods:
        per_day[entry.date] = per_day.get(entry.date, 0.0) + entry.total_calories

    return CalibrationWindow(
        user_id=user_id,
        start=start,
        end=end,
        weights=series,
        daily_calories=dict(sorted(per_day.items())),
        meals_logged=len(foods),
    )


def load_window(
    conn: sqlite3.Connection,
    user_id: str,
    now: datetime,
    config: CalibrationConfig,
    window_days: Optional[int] = None,
) -> CalibrationWindow:
    """Fetch weight and food entries for the ``window_days`` before ``now``."""
    days = window_days if window_days is not None else config.window_days
    end = utc(now)
    start = end - timedelta(days=days)

    weights = WeightQueries.get_weights_between(conn, user_id, start, end)
    foods = FoodQueries.get_food_between(conn, user_id, start.date(), end.date())

    return build_window(user_id, weights, foods, start, end, config.kg_per_lb)


def insufficient_reason(
    window: CalibrationWindow, config: CalibrationConfig
) -> Optional[str]:
    """Return why the window cannot be calibrated, or None if it can."""
    days = (window.end - window.start).days
    if window.weight_entries < config.min_weight_entries:
        return (
            f"Need at least {config.min_weight_entries} weight entries in the last "
            f"{days} days for calibration (found {window.weight_entries})."
        )
    if window.logged_days < config.min_logged_days:
        return (
            f"Need at least {config.min_logged_days} days of food logs in the last "
            f"{days} days for calibration (found {window.logged_days})."
        )
    return None
