"""Weight and food logging.

Key components:
- Profile, weight, food and calibration-history models and queries
- Exponentially smoothed weight trend (10% smoothing, gap-aware)
- Weight progress and weekly food statistics
"""

from __future__ import annotations

from bob.tracking.ema import calculate_trend, update_trend
from bob.tracking.models import (
    CalibrationRecord,
    FoodEntry,
    FoodItem,
    UserProfile,
    WeightEntry,
    to_kg,
)

__all__ = [
    "CalibrationRecord",
    "FoodEntry",
    "FoodItem",
    "UserProfile",
    "WeightEntry",
    "calculate_trend",
    "to_kg",
    "update_trend",
]
