"""Pytest fixtures for bob tests."""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bob.config.settings import Settings
from bob.db.connection import DatabaseConnection
from bob.tracking.models import FoodEntry, FoodItem, UserProfile
from bob.tracking.queries import FoodQueries, UserQueries, WeightQueries

# Fixed reference time for calibration windows
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_db():
    """Create a temporary database with schema."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    db = DatabaseConnection(db_path)
    db.initialize_schema()

    yield db

    # Cleanup
    db_path.unlink(missing_ok=True)


@pytest.fixture
def now() -> datetime:
    """Reference time used as the end of calibration windows."""
    return NOW


@pytest.fixture
def settings(temp_db) -> Settings:
    """Default settings pointing at the temporary database."""
    s = Settings()
    s.database.path = temp_db.db_path
    s.logging.level = "WARNING"
    return s


@pytest.fixture
def make_user(temp_db):
    """Factory creating a profile dated well before the reference time."""

    def _make(
        user_id: str = "alice",
        target: int = 2000,
        goal: str = "cut",
        onboarded: bool = True,
        created: datetime = NOW - timedelta(days=60),
    ) -> UserProfile:
        profile = UserProfile(
            user_id=user_id,
            name=user_id.title(),
            daily_calorie_target=target,
            goal=goal,
            onboarding_completed=onboarded,
        )
        with temp_db.get_connection() as conn:
            return UserQueries.create_user(conn, profile, now=created)

    return _make


@pytest.fixture
def add_weights(temp_db):
    """Factory logging weights at ``end - days_ago`` for each (days_ago, weight)."""

    def _add(user_id: str, readings: list[tuple[int, float]], unit: str = "kg",
             end: datetime = NOW) -> None:
        with temp_db.get_connection() as conn:
            for days_ago, weight in readings:
                WeightQueries.add_weight(
                    conn, user_id, weight, unit, end - timedelta(days=days_ago)
                )

    return _add


@pytest.fixture
def add_meals(temp_db):
    """Factory logging one meal per (days_ago, calories), created on that day."""

    def _add(user_id: str, meals: list[tuple[int, float]], meal_label: str = "dinner",
             end: datetime = NOW) -> None:
        with temp_db.get_connection() as conn:
            for days_ago, calories in meals:
                moment = end - timedelta(days=days_ago)
                entry = FoodEntry.from_items(
                    user_id,
                    moment.date(),
                    meal_label,
                    [FoodItem(name="meal", calories=calories)],
                    created_at=moment,
                )
                FoodQueries.log_food(conn, entry)

    return _add


@pytest.fixture
def two_week_log(make_user, add_weights, add_meals):
    """User on 2000 kcal eating 1800/day for 14 days and gaining 0.1 kg.

    The observed change is 0.26 kg short of what a 200 kcal/day deficit
    predicts, so a calibration raises the target by 145 kcal.
    """
    profile = make_user()
    add_weights("alice", [(13, 80.0), (7, 80.05), (0, 80.1)])
    add_meals("alice", [(d, 1800.0) for d in range(14)])
    return profile
