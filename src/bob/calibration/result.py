"""Result types returned by a calibration run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class CalibrationStatus(str, Enum):
    """Outcome of a calibration run."""

    INSUFFICIENT_DATA = "insufficient_data"
    CALIBRATED = "calibrated"
    NO_ADJUSTMENT_NEEDED = "no_adjustment_needed"


@dataclass
class CalibrationMetrics:
    """Numbers the decision was based on."""

    avg_daily_calories: float
    actual_weight_change: float  # kg, positive = gain
    expected_weight_change: float  # kg
    logged_days: int
    weight_entries: int
    start_weight: float  # kg
    end_weight: float  # kg

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "avg_daily_calories": round(self.avg_daily_calories, 1),
            "actual_weight_change": round(self.actual_weight_change, 3),
            "expected_weight_change": round(self.expected_weight_change, 3),
            "logged_days": self.logged_days,
            "weight_entries": self.weight_entries,
            "start_weight": round(self.start_weight, 2),
            "end_weight": round(self.end_weight, 2),
        }


@dataclass
class CalibrationResult:
    """Structured result of ``calibrate(user_id)``, also used as an API body."""

    status: CalibrationStatus
    reason: str
    old_target: Optional[int] = None
    new_target: Optional[int] = None
    adjustment: Optional[int] = None
    confidence: Optional[str] = None
    metrics: Optional[CalibrationMetrics] = None

    @property
    def applied(self) -> bool:
        """True if the target was changed."""
        return self.status == CalibrationStatus.CALIBRATED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, leaving out fields that do not apply."""
        data: dict[str, Any] = {"status": self.status.value, "reason": self.reason}
        if self.old_target is not None:
            data["old_target"] = self.old_target
        if self.new_target is not None:
            data["new_target"] = self.new_target
        if self.adjustment is not None:
            data["adjustment"] = self.adjustment
        if self.confidence is not None:
            data["confidence"] = self.confidence
        if self.metrics is not None:
            data["metrics"] = self.metrics.to_dict()
        return data

    @classmethod
    def insufficient(cls, reason: str) -> "CalibrationResult":
        """Result for a run that stopped before estimating."""
        return cls(status=CalibrationStatus.INSUFFICIENT_DATA, reason=reason)
