"""Energy-balance estimator for calorie target calibration.

Compares the weight change the current target predicts with the change
that was observed and proposes a bounded correction:

    expected = (daily_target - avg_intake) × logged_days / kcal_per_kg
    delta    = actual - expected

|delta| below the tolerance leaves the target alone. A positive delta
lowers the target by round(delta × kcal_per_kg / logged_days), at most
``max_decrease_kcal``; a negative delta raises it by the same formula, at
most ``max_increase_kcal``. The asymmetric caps keep one noisy window from
swinging the target far.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from bob.config.settings import CalibrationConfig


@dataclass
class Estimate:
    """Proposed change to a daily calorie target."""

    expected_weight_change: float  # kg
    delta: float  # kg, actual - expected
    adjustment: int  # kcal/day, signed; 0 means leave the target alone
    confidence: str  # 'high' or 'medium'
    reason: str


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def expected_weight_change(
    daily_target: float,
    avg_intake: float,
    logged_days: int,
    kcal_per_kg: float = 7700.0,
) -> float:
    """Weight change (kg) implied by eating ``avg_intake`` against ``daily_target``."""
    return (daily_target - avg_intake) * logged_days / kcal_per_kg


def estimate_adjustment(
    daily_target: int,
    avg_intake: float,
    logged_days: int,
    actual_weight_change: float,
    config: Optional[CalibrationConfig] = None,
) -> Estimate:
    """
    Propose a calorie target adjustment.

    Args:
        daily_target: Current daily calorie target (kcal)
        avg_intake: Average logged intake per logged day (kcal)
        logged_days: Number of days with food logs
        actual_weight_change: Observed weight change over the window (kg)
        config: Calibration constants (defaults if None)

    Returns:
        Estimate with the signed adjustment, confidence and reason

    Example:
        >>> estimate_adjustment(2000, 1800, 14, 0.1).adjustment
        145
    """
    if config is None:
        config = CalibrationConfig()
    if logged_days <= 0:
        raise ValueError(f"logged_days must be positive, got {logged_days}")

    expected = expected_weight_change(
        daily_target, avg_intake, logged_days, config.kcal_per_kg
    )
    delta = actual_weight_change - expected
    confidence = "high" if abs(delta) > config.high_confidence_kg else "medium"

    if abs(delta) < config.tolerance_kg:
        return Estimate(
            expected_weight_change=expected,
            delta=delta,
            adjustment=0,
            confidence=confidence,
            reason=(
                "Weight change matches expectation "
                f"({delta:+.2f}kg difference). No adjustment needed."
            ),
        )

    raw = round_half_up(abs(delta) * config.kcal_per_kg / logged_days)
    if delta > 0:
        amount = min(raw, config.max_decrease_kcal)
        adjustment = -amount
        reason = (
            f"Weight is {abs(delta):.1f}kg higher than expected over {logged_days} "
            f"logged days. Reducing calorie target by {amount} kcal/day."
        )
    else:
        amount = min(raw, config.max_increase_kcal)
        adjustment = amount
        reason = (
            f"Weight is {abs(delta):.1f}kg lower than expected over {logged_days} "
            f"logged days. Increasing calorie target by {amount} kcal/day."
        )

    if amount == 0:
        reason = "Difference is too small to change the daily target. No adjustment needed."

    return Estimate(
        expected_weight_change=expected,
        delta=delta,
        adjustment=adjustment,
        confidence=confidence,
        reason=reason,
    )
