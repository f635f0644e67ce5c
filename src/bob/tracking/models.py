"""Data models for weight logs, food logs and calibration history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional

VALID_GOALS = ("cut", "gain", "maintain")
VALID_UNITS = ("kg", "lbs")
VALID_PREFERRED_UNITS = ("metric", "imperial")
VALID_MEAL_LABELS = ("breakfast", "lunch", "dinner", "snack")
VALID_CONFIDENCE = ("high", "medium", "low")

KG_PER_LB = 0.453592


def to_kg(weight: float, unit: str, kg_per_lb: float = KG_PER_LB) -> float:
    """Convert a weight to kilograms.

    Args:
        weight: Weight value
        unit: "kg" or "lbs"
        kg_per_lb: Conversion multiplier for pounds

    Returns:
        Weight in kg
    """
    if unit == "lbs":
        return weight * kg_per_lb
    if unit == "kg":
        return weight
    raise ValueError(f"unit must be one of {VALID_UNITS}, got '{unit}'")


def utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime (naive values are taken as UTC)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class UserProfile:
    """User profile holding the single current daily calorie target."""

    user_id: str
    name: str
    daily_calorie_target: int
    goal: str = "maintain"  # 'cut', 'gain' or 'maintain'
    protein_target: Optional[float] = None
    current_weight: Optional[float] = None  # kg
    target_weight: Optional[float] = None  # kg
    preferred_units: str = "metric"
    onboarding_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("user_id must not be empty")
        if self.goal not in VALID_GOALS:
            raise ValueError(f"goal must be one of {VALID_GOALS}, got '{self.goal}'")
        if self.preferred_units not in VALID_PREFERRED_UNITS:
            raise ValueError(
                f"preferred_units must be one of {VALID_PREFERRED_UNITS}, "
                f"got '{self.preferred_units}'"
            )
        if self.daily_calorie_target <= 0:
            raise ValueError(
                f"daily_calorie_target must be positive, got {self.daily_calorie_target}"
            )


@dataclass
class WeightEntry:
    """A single weight measurement, in the unit it was logged in."""

    log_id: Optional[int]
    user_id: str
    weight: float
    unit: str  # 'kg' or 'lbs'
    date: date
    timestamp: datetime
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.unit not in VALID_UNITS:
            raise ValueError(f"unit must be one of {VALID_UNITS}, got '{self.unit}'")
        if self.weight <= 0:
            raise ValueError(f"weight must be positive, got {self.weight}")


@dataclass
class FoodItem:
    """One item of a logged meal."""

    name: str
    quantity: str = ""
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "quantity": self.quantity,
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FoodItem":
        """Create from dictionary (missing macros default to 0)."""
        return cls(
            name=str(data["name"]),
            quantity=str(data.get("quantity", "")),
            calories=float(data.get("calories", 0)),
            protein=float(data.get("protein", 0)),
            carbs=float(data.get("carbs", 0)),
            fat=float(data.get("fat", 0)),
        )


@dataclass
class FoodEntry:
    """A logged meal with its macro totals."""

    log_id: Optional[int]
    user_id: str
    date: date
    meal_label: str
    items: list[FoodItem] = field(default_factory=list)
    total_calories: float = 0.0
    total_protein: float = 0.0
    total_carbs: float = 0.0
    total_fat: float = 0.0
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.meal_label not in VALID_MEAL_LABELS:
            raise ValueError(
                f"meal_label must be one of {VALID_MEAL_LABELS}, got '{self.meal_label}'"
            )
        if self.total_calories < 0:
            raise ValueError(f"total_calories must not be negative, got {self.total_calories}")

    @classmethod
    def from_items(
        cls,
        user_id: str,
        log_date: date,
        meal_label: str,
        items: list[FoodItem],
        created_at: Optional[datetime] = None,
    ) -> "FoodEntry":
        """Build an entry whose totals are the sums over ``items``."""
        return cls(
            log_id=None,
            user_id=user_id,
            date=log_date,
            meal_label=meal_label,
            items=list(items),
            total_calories=sum(item.calories for item in items),
            total_protein=sum(item.protein for item in items),
            total_carbs=sum(item.carbs for item in items),
            total_fat=sum(item.fat for item in items),
            created_at=created_at,
        )


@dataclass
class CalibrationRecord:
    """Audit row for a calorie target adjustment."""

    record_id: Optional[int]
    user_id: str
    date: date
    old_target: int
    new_target: int
    reason: str
    data_points_analyzed: int
    confidence: str  # 'high', 'medium' or 'low'
    created_at: datetime

    def __post_init__(self) -> None:
        if self.confidence not in VALID_CONFIDENCE:
            raise ValueError(
                f"confidence must be one of {VALID_CONFIDENCE}, got '{self.confidence}'"
            )

    @property
    def adjustment(self) -> int:
        """Signed change applied to the target (kcal/day)."""
        return self.new_target - self.old_target

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "record_id": self.record_id,
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "old_target": self.old_target,
            "new_target": self.new_target,
            "adjustment": self.adjustment,
            "reason": self.reason,
            "data_points_analyzed": self.data_points_analyzed,
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat(),
        }
