"""Calorie target calibration.

Three sequential steps per user:
- aggregator: weight (kg) and per-day calorie totals for the lookback window
- estimator: expected vs. observed weight change, bounded target adjustment
- updater: new target and audit record written in one transaction
"""

from __future__ import annotations

from bob.calibration.estimator import Estimate, estimate_adjustment
from bob.calibration.result import (
    CalibrationMetrics,
    CalibrationResult,
    CalibrationStatus,
)
from bob.calibration.service import (
    BatchSummary,
    calibrate,
    get_calibration_history,
    get_latest_calibration,
    run_batch,
    should_calibrate,
    trigger_calibration,
)

__all__ = [
    "BatchSummary",
    "CalibrationMetrics",
    "CalibrationResult",
    "CalibrationStatus",
    "Estimate",
    "calibrate",
    "estimate_adjustment",
    "get_calibration_history",
    "get_latest_calibration",
    "run_batch",
    "should_calibrate",
    "trigger_calibration",
]
