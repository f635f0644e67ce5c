"""Weight and weekly food statistics for display."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from bob.config.settings import CalibrationConfig
from bob.tracking.models import to_kg
from bob.tracking.queries import FoodQueries, UserQueries, WeightQueries


@dataclass
class WeightStats:
    """Overall weight progress in kg."""

    current: float
    starting: float
    target: Optional[float]
    total_change: float  # negative = lost
    to_goal: Optional[float]
    entries: int


@dataclass
class WeeklyFoodStats:
    """Food log summary for the seven days starting ``week_start``."""

    week_start: date
    week_end: date
    total_calories: float
    average_calories: int  # per day with logs
    meals_logged: int
    days_with_logs: int
    expected_weight_change: float  # kg, negative = loss


def generate_weight_stats(
    conn: sqlite3.Connection,
    user_id: str,
    config: Optional[CalibrationConfig] = None,
) -> Optional[WeightStats]:
    """Weight progress since the first entry; None without profile or entries."""
    config = config or CalibrationConfig()
    profile = UserQueries.get_user(conn, user_id)
    if profile is None:
        return None

    first = WeightQueries.get_first_weight(conn, user_id)
    latest = WeightQueries.get_latest_weight(conn, user_id)
    if first is None or latest is None:
        return None

    current = to_kg(latest.weight, latest.unit, config.kg_per_lb)
    starting = to_kg(first.weight, first.unit, config.kg_per_lb)
    target = profile.target_weight

    return WeightStats(
        current=current,
        starting=starting,
        target=target,
        total_change=current - starting,
        to_goal=target - current if target is not None else None,
        entries=WeightQueries.count_weights(conn, user_id),
    )


def generate_weekly_food_stats(
    conn: sqlite3.Connection,
    user_id: str,
    week_start: date,
    config: Optional[CalibrationConfig] = None,
) -> Optional[WeeklyFoodStats]:
    """Calorie summary for one week against the current target."""
    config = config or CalibrationConfig()
    profile = UserQueries.get_user(conn, user_id)
    if profile is None:
        return None

    week_end = week_start + timedelta(days=6)
    entries = FoodQueries.get_food_between(conn, user_id, week_start, week_end)

    total = sum(e.total_calories for e in entries)
    days_with_logs = len({e.date for e in entries})
    average = total / days_with_logs if days_with_logs else 0.0

    weekly_deficit = (profile.daily_calorie_target - average) * 7
    expected = -(weekly_deficit / config.kcal_per_kg)

    return WeeklyFoodStats(
        week_start=week_start,
        week_end=week_end,
        total_calories=total,
        average_calories=round(average),
        meals_logged=len(entries),
        days_with_logs=days_with_logs,
        expected_weight_change=round(expected, 2),
    )


def format_weight_stats(stats: WeightStats) -> str:
    """Format weight stats as text."""
    direction = "lost" if stats.total_change < 0 else "gained"
    lines = [
        f"Weight Progress ({stats.entries} entries)",
        "=" * 40,
        f"Current weight:  {stats.current:.1f} kg",
        f"Starting weight: {stats.starting:.1f} kg",
        f"Total change:    {abs(stats.total_change):.1f} kg {direction}",
    ]
    if stats.target is not None and stats.to_goal is not None:
        lines.append(f"Target weight:   {stats.target:.1f} kg ({stats.to_goal:+.1f} kg to go)")
    return "\n".join(lines)


def format_weekly_food_stats(stats: WeeklyFoodStats) -> str:
    """Format weekly food stats as text."""
    lines = [
        f"Week {stats.week_start.isoformat()} to {stats.week_end.isoformat()}",
        "=" * 40,
        f"Meals logged:     {stats.meals_logged} over {stats.days_with_logs} days",
        f"Total calories:   {stats.total_calories:.0f} kcal",
        f"Average per day:  {stats.average_calories} kcal",
        f"Expected change:  {stats.expected_weight_change:+.2f} kg",
    ]
    return "\n".join(lines)
