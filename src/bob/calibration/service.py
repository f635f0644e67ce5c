"""Calibration entry points: single user, manual trigger, batch and review.

A run reads the profile, aggregates the lookback window, estimates an
adjustment and, only if the adjustment is non-zero, writes the new target
together with its audit record.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from bob.calibration.aggregator import insufficient_reason, load_window
from bob.calibration.estimator import estimate_adjustment
from bob.calibration.result import (
    CalibrationMetrics,
    CalibrationResult,
    CalibrationStatus,
)
from bob.calibration.updater import apply_adjustment
from bob.config.settings import Settings, get_settings
from bob.db.connection import DatabaseConnection
from bob.errors import NotAuthenticatedError, ProfileNotFoundError
from bob.tracking.models import CalibrationRecord, utc, utcnow
from bob.tracking.queries import (
    CalibrationQueries,
    FoodQueries,
    UserQueries,
    WeightQueries,
)

logger = logging.getLogger(__name__)


def _newest_data_timestamp(conn: sqlite3.Connection, user_id: str) -> Optional[datetime]:
    stamps = [
        ts
        for ts in (
            WeightQueries.latest_timestamp(conn, user_id),
            FoodQueries.latest_timestamp(conn, user_id),
        )
        if ts is not None
    ]
    return max(stamps) if stamps else None


def calibrate(
    conn: sqlite3.Connection,
    user_id: str,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> CalibrationResult:
    """
    Run one calibration for ``user_id``.

    Args:
        conn: Open database connection
        user_id: User to calibrate
        now: Reference time for the lookback window (default: current UTC time)
        settings: Settings to use (default: global settings)

    Returns:
        CalibrationResult with status insufficient_data, calibrated or
        no_adjustment_needed

    Raises:
        ProfileNotFoundError: If the user has no profile
    """
    settings = settings or get_settings()
    config = settings.calibration
    now = utc(now) if now else utcnow()

    profile = UserQueries.get_user(conn, user_id)
    if profile is None:
        raise ProfileNotFoundError(user_id)

    window = load_window(conn, user_id, now, config)
    missing = insufficient_reason(window, config)
    if missing is not None:
        logger.info("Skipping calibration for %s: %s", user_id, missing)
        return CalibrationResult.insufficient(missing)

    # A second run over the same data must not adjust again. Deleted entries
    # change the window's data points and so count as new data.
    latest = CalibrationQueries.get_latest(conn, user_id)
    if latest is not None:
        newest = _newest_data_timestamp(conn, user_id)
        unchanged = window.logged_days + window.weight_entries == latest.data_points_analyzed
        if unchanged and (newest is None or newest <= latest.created_at):
            logger.info("No new data for %s since %s", user_id, latest.date)
            return CalibrationResult(
                status=CalibrationStatus.NO_ADJUSTMENT_NEEDED,
                reason=(
                    f"Already calibrated on {latest.date.isoformat()}; "
                    "no new data since then. No adjustment needed."
                ),
            )

    actual_change = window.weight_change(
        config.weight_change_method, config.trend_smoothing
    )
    estimate = estimate_adjustment(
        profile.daily_calorie_target,
        window.avg_daily_calories,
        window.logged_days,
        actual_change,
        config,
    )
    metrics = CalibrationMetrics(
        avg_daily_calories=window.avg_daily_calories,
        actual_weight_change=actual_change,
        expected_weight_change=estimate.expected_weight_change,
        logged_days=window.logged_days,
        weight_entries=window.weight_entries,
        start_weight=window.start_weight,
        end_weight=window.end_weight,
    )

    if estimate.adjustment == 0:
        logger.info("No adjustment for %s: %s", user_id, estimate.reason)
        return CalibrationResult(
            status=CalibrationStatus.NO_ADJUSTMENT_NEEDED,
            reason=estimate.reason,
            confidence=estimate.confidence,
            metrics=metrics,
        )

    old_target = profile.daily_calorie_target
    new_target = old_target + estimate.adjustment
    apply_adjustment(
        conn,
        user_id,
        old_target,
        new_target,
        estimate.reason,
        window.logged_days + window.weight_entries,
        estimate.confidence,
        now,
    )

    return CalibrationResult(
        status=CalibrationStatus.CALIBRATED,
        reason=estimate.reason,
        old_target=old_target,
        new_target=new_target,
        adjustment=estimate.adjustment,
        confidence=estimate.confidence,
        metrics=metrics,
    )


def trigger_calibration(
    conn: sqlite3.Connection,
    identity: Optional[str],
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> CalibrationResult:
    """
    Manual, caller-initiated calibration.

    Args:
        identity: Authenticated caller's user ID (None if unauthenticated)

    Raises:
        NotAuthenticatedError: If ``identity`` is missing
        ProfileNotFoundError: If the caller has no profile
    """
    if not identity:
        raise NotAuthenticatedError()
    return calibrate(conn, identity, now=now, settings=settings)


@dataclass
class BatchSummary:
    """Outcome counts of a batch run over all onboarded users."""

    results: dict[str, CalibrationResult] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    def count(self, status: CalibrationStatus) -> int:
        return sum(1 for r in self.results.values() if r.status == status)

    @property
    def processed(self) -> int:
        return len(self.results) + len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "processed": self.processed,
            "calibrated": self.count(CalibrationStatus.CALIBRATED),
            "no_adjustment_needed": self.count(CalibrationStatus.NO_ADJUSTMENT_NEEDED),
            "insufficient_data": self.count(CalibrationStatus.INSUFFICIENT_DATA),
            "failed": dict(self.failed),
        }


def run_batch(
    db: DatabaseConnection,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> BatchSummary:
    """
    Calibrate every onboarded user.

    Each user runs in its own connection; a failure is logged and recorded
    in the summary and the batch moves on to the next user.
    """
    settings = settings or get_settings()
    now = utc(now) if now else utcnow()

    with db.get_connection() as conn:
        user_ids = [p.user_id for p in UserQueries.list_users(conn, onboarded_only=True)]

    logger.info("Starting calibration batch for %d users", len(user_ids))
    summary = BatchSummary()
    for user_id in user_ids:
        try:
            with db.get_connection() as conn:
                summary.results[user_id] = calibrate(conn, user_id, now, settings)
        except Exception as e:
            logger.exception("Calibration failed for user %s", user_id)
            summary.failed[user_id] = str(e)

    logger.info(
        "Calibration batch done: %d calibrated, %d failed",
        summary.count(CalibrationStatus.CALIBRATED),
        len(summary.failed),
    )
    return summary


def get_calibration_history(
    conn: sqlite3.Connection, user_id: str, limit: int = 10
) -> list[CalibrationRecord]:
    """Calibration records for a user, newest first."""
    return CalibrationQueries.get_history(conn, user_id, limit)


@dataclass
class CalibrationInsight:
    """Latest calibration with its age."""

    record: CalibrationRecord
    is_recent: bool
    weeks_since: int

    def to_dict(self) -> dict[str, Any]:
        data = self.record.to_dict()
        data["is_recent"] = self.is_recent
        data["weeks_since"] = self.weeks_since
        return data


def get_latest_calibration(
    conn: sqlite3.Connection,
    user_id: str,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> Optional[CalibrationInsight]:
    """Latest calibration record; recent means within the review interval."""
    settings = settings or get_settings()
    now = utc(now) if now else utcnow()

    latest = CalibrationQueries.get_latest(conn, user_id)
    if latest is None:
        return None

    age = now - latest.created_at
    return CalibrationInsight(
        record=latest,
        is_recent=age < timedelta(days=settings.review.interval_days),
        weeks_since=max(age.days // 7, 0),
    )


@dataclass
class CalibrationCheck:
    """Whether running a calibration now is worthwhile."""

    needed: bool
    reason: str
    data_points: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"needed": self.needed, "reason": self.reason, "data_points": self.data_points}


def should_calibrate(
    conn: sqlite3.Connection,
    user_id: str,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> CalibrationCheck:
    """
    Decide whether a calibration is due.

    Due when the last calibration is older than the review interval and the
    interval holds enough weight and food logs, or when weight has stalled
    (plateau) for a user who is not maintaining.

    Raises:
        ProfileNotFoundError: If the user has no profile
    """
    settings = settings or get_settings()
    review = settings.review
    now = utc(now) if now else utcnow()

    profile = UserQueries.get_user(conn, user_id)
    if profile is None:
        raise ProfileNotFoundError(user_id)

    latest = CalibrationQueries.get_latest(conn, user_id)
    interval_start = now - timedelta(days=review.interval_days)
    if latest is None or latest.created_at < interval_start:
        window = load_window(
            conn, user_id, now, settings.calibration, window_days=review.interval_days
        )
        if (
            window.weight_entries >= review.min_weight_logs
            and window.meals_logged >= review.min_food_logs
        ):
            return CalibrationCheck(
                needed=True,
                reason=(
                    f"It's been over {review.interval_days} days since your last "
                    "calibration, and you have enough data for an accurate analysis."
                ),
                data_points={
                    "weight_logs": window.weight_entries,
                    "food_logs": window.meals_logged,
                },
            )

    recent = load_window(
        conn, user_id, now, settings.calibration, window_days=review.plateau_days
    )
    if recent.weight_entries >= review.plateau_min_entries and profile.goal != "maintain":
        change = abs(recent.end_weight - recent.start_weight)
        if change < review.plateau_threshold_kg:
            return CalibrationCheck(
                needed=True,
                reason=(
                    "You seem to have hit a plateau. "
                    "A calibration could help break through it."
                ),
                data_points={
                    "days_on_plateau": review.plateau_days,
                    "weight_change": round(change, 2),
                },
            )

    return CalibrationCheck(needed=False, reason="No calibration needed right now.")
