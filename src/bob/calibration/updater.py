"""Write a calibration decision: new target plus audit record, atomically."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from bob.errors import ProfileNotFoundError, StaleTargetError
from bob.tracking.models import CalibrationRecord, utc
from bob.tracking.queries import CalibrationQueries, UserQueries

logger = logging.getLogger(__name__)


def apply_adjustment(
    conn: sqlite3.Connection,
    user_id: str,
    old_target: int,
    new_target: int,
    reason: str,
    data_points_analyzed: int,
    confidence: str,
    now: datetime,
) -> CalibrationRecord:
    """
    Patch the profile target and append the audit record in one transaction.

    The profile is only updated if its target still equals ``old_target``;
    either both writes are committed or neither is.

    Raises:
        ProfileNotFoundError: If the profile no longer exists
        StaleTargetError: If the target changed since it was read
    """
    now = utc(now)
    record = CalibrationRecord(
        record_id=None,
        user_id=user_id,
        date=now.date(),
        old_target=old_target,
        new_target=new_target,
        reason=reason,
        data_points_analyzed=data_points_analyzed,
        confidence=confidence,
        created_at=now,
    )

    try:
        updated = UserQueries.compare_and_set_target(
            conn, user_id, old_target, new_target, now
        )
        if updated == 0:
            if UserQueries.get_user(conn, user_id) is None:
                raise ProfileNotFoundError(user_id)
            raise StaleTargetError(user_id, old_target)
        record.record_id = CalibrationQueries.insert_record(conn, record)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(
        "Calibrated %s: %d -> %d kcal/day (%s confidence)",
        user_id, old_target, new_target, confidence,
    )
    return record
