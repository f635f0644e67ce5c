"""Database queries for profiles, weight logs, food logs and calibration history."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime
from typing import Optional

from bob.tracking.models import (
    CalibrationRecord,
    FoodEntry,
    FoodItem,
    UserProfile,
    WeightEntry,
    utc,
    utcnow,
)


def _ts(moment: datetime) -> str:
    """Serialize a timestamp so that string order matches time order."""
    return utc(moment).isoformat(timespec="microseconds")


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return utc(datetime.fromisoformat(value)) if value else None


def _row_to_profile(row: sqlite3.Row) -> UserProfile:
    return UserProfile(
        user_id=row["user_id"],
        name=row["name"],
        daily_calorie_target=int(row["daily_calorie_target"]),
        goal=row["goal"],
        protein_target=row["protein_target"],
        current_weight=row["current_weight"],
        target_weight=row["target_weight"],
        preferred_units=row["preferred_units"],
        onboarding_completed=bool(row["onboarding_completed"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _row_to_weight(row: sqlite3.Row) -> WeightEntry:
    return WeightEntry(
        log_id=row["log_id"],
        user_id=row["user_id"],
        weight=row["weight"],
        unit=row["unit"],
        date=date.fromisoformat(row["date"]),
        timestamp=_parse_ts(row["timestamp"]),  # type: ignore[arg-type]
        notes=row["notes"],
    )


def _row_to_food(row: sqlite3.Row) -> FoodEntry:
    return FoodEntry(
        log_id=row["log_id"],
        user_id=row["user_id"],
        date=date.fromisoformat(row["date"]),
        meal_label=row["meal_label"],
        items=[FoodItem.from_dict(item) for item in json.loads(row["items_json"])],
        total_calories=row["total_calories"],
        total_protein=row["total_protein"],
        total_carbs=row["total_carbs"],
        total_fat=row["total_fat"],
        created_at=_parse_ts(row["created_at"]),
    )


def _row_to_record(row: sqlite3.Row) -> CalibrationRecord:
    return CalibrationRecord(
        record_id=row["record_id"],
        user_id=row["user_id"],
        date=date.fromisoformat(row["date"]),
        old_target=row["old_target"],
        new_target=row["new_target"],
        reason=row["reason"],
        data_points_analyzed=row["data_points_analyzed"],
        confidence=row["confidence"],
        created_at=_parse_ts(row["created_at"]),  # type: ignore[arg-type]
    )


_PROFILE_COLUMNS = """
    user_id, name, goal, daily_calorie_target, protein_target, current_weight,
    target_weight, preferred_units, onboarding_completed, created_at, updated_at
"""


class UserQueries:
    """Database queries for user profiles."""

    @staticmethod
    def create_user(
        conn: sqlite3.Connection,
        profile: UserProfile,
        now: Optional[datetime] = None,
    ) -> UserProfile:
        """Insert a new profile and return it with timestamps filled in."""
        now = utc(now) if now else utcnow()
        conn.execute(
            f"""
            INSERT INTO user_profiles ({_PROFILE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                profile.user_id,
                profile.name,
                profile.goal,
                profile.daily_calorie_target,
                profile.protein_target,
                profile.current_weight,
                profile.target_weight,
                profile.preferred_units,
                profile.onboarding_completed,
                _ts(now),
                _ts(now),
            ),
        )
        conn.commit()
        profile.created_at = now
        profile.updated_at = now
        return profile

    @staticmethod
    def get_user(conn: sqlite3.Connection, user_id: str) -> Optional[UserProfile]:
        """Get user profile by ID."""
        row = conn.execute(
            f"SELECT {_PROFILE_COLUMNS} FROM user_profiles WHERE user_id = ?",
            (user_id,),
        ).fetchone()
        return _row_to_profile(row) if row else None

    @staticmethod
    def get_default_user(conn: sqlite3.Connection) -> Optional[UserProfile]:
        """Get the first (oldest) user profile."""
        row = conn.execute(
            f"""
            SELECT {_PROFILE_COLUMNS} FROM user_profiles
            ORDER BY created_at, user_id LIMIT 1
            """
        ).fetchone()
        return _row_to_profile(row) if row else None

    @staticmethod
    def list_users(
        conn: sqlite3.Connection, onboarded_only: bool = False
    ) -> list[UserProfile]:
        """List profiles, optionally only those that completed onboarding."""
        query = f"SELECT {_PROFILE_COLUMNS} FROM user_profiles"
        if onboarded_only:
            query += " WHERE onboarding_completed = 1"
        query += " ORDER BY created_at, user_id"
        return [_row_to_profile(row) for row in conn.execute(query).fetchall()]

    @staticmethod
    def update_user(
        conn: sqlite3.Connection,
        profile: UserProfile,
        now: Optional[datetime] = None,
    ) -> None:
        """Update an existing user profile."""
        now = utc(now) if now else utcnow()
        cursor = conn.execute(
            """
            UPDATE user_profiles
            SET name = ?, goal = ?, daily_calorie_target = ?, protein_target = ?,
                current_weight = ?, target_weight = ?, preferred_units = ?,
                onboarding_completed = ?, updated_at = ?
            WHERE user_id = ?
            """,
            (
                profile.name,
                profile.goal,
                profile.daily_calorie_target,
                profile.protein_target,
                profile.current_weight,
                profile.target_weight,
                profile.preferred_units,
                profile.onboarding_completed,
                _ts(now),
                profile.user_id,
            ),
        )
        if cursor.rowcount == 0:
            raise ValueError(f"Cannot update missing profile '{profile.user_id}'")
        conn.commit()
        profile.updated_at = now

    @staticmethod
    def set_calorie_target(
        conn: sqlite3.Connection,
        user_id: str,
        target: int,
        now: Optional[datetime] = None,
    ) -> bool:
        """Manually set the daily calorie target. Returns False if no such user."""
        if target <= 0:
            raise ValueError(f"daily_calorie_target must be positive, got {target}")
        now = utc(now) if now else utcnow()
        cursor = conn.execute(
            """
            UPDATE user_profiles SET daily_calorie_target = ?, updated_at = ?
            WHERE user_id = ?
            """,
            (target, _ts(now), user_id),
        )
        conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def compare_and_set_target(
        conn: sqlite3.Connection,
        user_id: str,
        expected_target: int,
        new_target: int,
        now: datetime,
    ) -> int:
        """
        Replace the target only if it still equals ``expected_target``.

        Does not commit; the caller owns the transaction.

        Returns:
            Number of rows updated (0 or 1)
        """
        cursor = conn.execute(
            """
            UPDATE user_profiles SET daily_calorie_target = ?, updated_at = ?
            WHERE user_id = ? AND daily_calorie_target = ?
            """,
            (new_target, _ts(now), user_id, expected_target),
        )
        return cursor.rowcount


_WEIGHT_COLUMNS = "log_id, user_id, weight, unit, date, timestamp, notes"


class WeightQueries:
    """Database queries for weight log entries."""

    @staticmethod
    def add_weight(
        conn: sqlite3.Connection,
        user_id: str,
        weight: float,
        unit: str,
        timestamp: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> WeightEntry:
        """
        Add a weight entry.

        Entries are never replaced; several entries on one day are kept.
        """
        timestamp = utc(timestamp) if timestamp else utcnow()
        entry = WeightEntry(
            log_id=None,
            user_id=user_id,
            weight=weight,
            unit=unit,
            date=timestamp.date(),
            timestamp=timestamp,
            notes=notes,
        )
        cursor = conn.execute(
            """
            INSERT INTO weight_log (user_id, weight, unit, date, timestamp, notes)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, weight, unit, entry.date.isoformat(), _ts(timestamp), notes),
        )
        conn.commit()
        entry.log_id = cursor.lastrowid
        return entry

    @staticmethod
    def get_weights_between(
        conn: sqlite3.Connection,
        user_id: str,
        start: datetime,
        end: datetime,
    ) -> list[WeightEntry]:
        """Get entries with start <= timestamp <= end, in chronological order."""
        rows = conn.execute(
            f"""
            SELECT {_WEIGHT_COLUMNS} FROM weight_log
            WHERE user_id = ? AND timestamp >= ? AND timestamp <= ?
            ORDER BY timestamp, log_id
            """,
            (user_id, _ts(start), _ts(end)),
        ).fetchall()
        return [_row_to_weight(row) for row in rows]

    @staticmethod
    def get_weight_history(
        conn: sqlite3.Connection,
        user_id: str,
        limit: Optional[int] = None,
    ) -> list[WeightEntry]:
        """
        Get weight history for a user.

        Args:
            user_id: User ID
            limit: If set, return only the most recent N entries

        Returns:
            Entries in chronological order
        """
        query = f"""
            SELECT {_WEIGHT_COLUMNS} FROM weight_log
            WHERE user_id = ?
            ORDER BY timestamp DESC, log_id DESC
        """
        params: list = [user_id]
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        rows = conn.execute(query, params).fetchall()
        return [_row_to_weight(row) for row in reversed(rows)]

    @staticmethod
    def get_latest_weight(
        conn: sqlite3.Connection, user_id: str
    ) -> Optional[WeightEntry]:
        """Get the most recent weight entry."""
        row = conn.execute(
            f"""
            SELECT {_WEIGHT_COLUMNS} FROM weight_log
            WHERE user_id = ?
            ORDER BY timestamp DESC, log_id DESC LIMIT 1
            """,
            (user_id,),
        ).fetchone()
        return _row_to_weight(row) if row else None

    @staticmethod
    def get_first_weight(
        conn: sqlite3.Connection, user_id: str
    ) -> Optional[WeightEntry]:
        """Get the oldest weight entry."""
        row = conn.execute(
            f"""
            SELECT {_WEIGHT_COLUMNS} FROM weight_log
            WHERE user_id = ?
            ORDER BY timestamp, log_id LIMIT 1
            """,
            (user_id,),
        ).fetchone()
        return _row_to_weight(row) if row else None

    @staticmethod
    def count_weights(conn: sqlite3.Connection, user_id: str) -> int:
        """Count all weight entries for a user."""
        row = conn.execute(
            "SELECT COUNT(*) FROM weight_log WHERE user_id = ?", (user_id,)
        ).fetchone()
        return row[0]

    @staticmethod
    def latest_timestamp(
        conn: sqlite3.Connection, user_id: str
    ) -> Optional[datetime]:
        """Timestamp of the most recently recorded weight entry."""
        row = conn.execute(
            "SELECT MAX(timestamp) FROM weight_log WHERE user_id = ?", (user_id,)
        ).fetchone()
        return _parse_ts(row[0]) if row else None

    @staticmethod
    def delete_weight(conn: sqlite3.Connection, user_id: str, log_id: int) -> bool:
        """Delete a user's weight entry. Returns False if it does not exist."""
        cursor = conn.execute(
            "DELETE FROM weight_log WHERE log_id = ? AND user_id = ?",
            (log_id, user_id),
        )
        conn.commit()
        return cursor.rowcount > 0


_FOOD_COLUMNS = """
    log_id, user_id, date, meal_label, items_json, total_calories,
    total_protein, total_carbs, total_fat, created_at
"""


class FoodQueries:
    """Database queries for food log entries."""

    @staticmethod
    def log_food(conn: sqlite3.Connection, entry: FoodEntry) -> FoodEntry:
        """Insert a logged meal and return it with its log_id."""
        if entry.created_at is None:
            entry.created_at = utcnow()
        cursor = conn.execute(
            """
            INSERT INTO food_log (user_id, date, meal_label, items_json, total_calories,
                                  total_protein, total_carbs, total_fat, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.user_id,
                entry.date.isoformat(),
                entry.meal_label,
                json.dumps([item.to_dict() for item in entry.items]),
                entry.total_calories,
                entry.total_protein,
                entry.total_carbs,
                entry.total_fat,
                _ts(entry.created_at),
            ),
        )
        conn.commit()
        entry.log_id = cursor.lastrowid
        return entry

    @staticmethod
    def get_food_between(
        conn: sqlite3.Connection,
        user_id: str,
        start_date: date,
        end_date: date,
    ) -> list[FoodEntry]:
        """Get meals logged on start_date..end_date (inclusive), oldest first."""
        rows = conn.execute(
            f"""
            SELECT {_FOOD_COLUMNS} FROM food_log
            WHERE user_id = ? AND date >= ? AND date <= ?
            ORDER BY date, created_at, log_id
            """,
            (user_id, start_date.isoformat(), end_date.isoformat()),
        ).fetchall()
        return [_row_to_food(row) for row in rows]

    @staticmethod
    def latest_timestamp(
        conn: sqlite3.Connection, user_id: str
    ) -> Optional[datetime]:
        """Creation time of the most recently logged meal."""
        row = conn.execute(
            "SELECT MAX(created_at) FROM food_log WHERE user_id = ?", (user_id,)
        ).fetchone()
        return _parse_ts(row[0]) if row else None

    @staticmethod
    def delete_food(conn: sqlite3.Connection, user_id: str, log_id: int) -> bool:
        """Delete a user's logged meal. Returns False if it does not exist."""
        cursor = conn.execute(
            "DELETE FROM food_log WHERE log_id = ? AND user_id = ?",
            (log_id, user_id),
        )
        conn.commit()
        return cursor.rowcount > 0


_RECORD_COLUMNS = """
    record_id, user_id, date, old_target, new_target, reason,
    data_points_analyzed, confidence, created_at
"""


class CalibrationQueries:
    """Database queries for the calibration audit log."""

    @staticmethod
    def insert_record(conn: sqlite3.Connection, record: CalibrationRecord) -> int:
        """
        Append a calibration record.

        Does not commit; the caller owns the transaction.
        """
        cursor = conn.execute(
            """
            INSERT INTO calibration_history (user_id, date, old_target, new_target, reason,
                                             data_points_analyzed, confidence, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.user_id,
                record.date.isoformat(),
                record.old_target,
                record.new_target,
                record.reason,
                record.data_points_analyzed,
                record.confidence,
                _ts(record.created_at),
            ),
        )
        return cursor.lastrowid or 0

    @staticmethod
    def get_history(
        conn: sqlite3.Connection, user_id: str, limit: int = 10
    ) -> list[CalibrationRecord]:
        """Get calibration history, newest first."""
        rows = conn.execute(
            f"""
            SELECT {_RECORD_COLUMNS} FROM calibration_history
            WHERE user_id = ?
            ORDER BY created_at DESC, record_id DESC
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    @staticmethod
    def get_latest(
        conn: sqlite3.Connection, user_id: str
    ) -> Optional[CalibrationRecord]:
        """Get the most recent calibration record."""
        history = CalibrationQueries.get_history(conn, user_id, limit=1)
        return history[0] if history else None
