"""Tests for calibration runs, batch processing and review helpers."""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from bob.calibration.result import CalibrationStatus
from bob.calibration.service import (
    calibrate,
    get_calibration_history,
    get_latest_calibration,
    run_batch,
    should_calibrate,
    trigger_calibration,
)
from bob.calibration.updater import apply_adjustment
from bob.errors import NotAuthenticatedError, ProfileNotFoundError, StaleTargetError
from bob.tracking.queries import CalibrationQueries, FoodQueries, UserQueries


def _target(db, user_id: str = "alice") -> int:
    with db.get_connection() as conn:
        return UserQueries.get_user(conn, user_id).daily_calorie_target


def _history(db, user_id: str = "alice"):
    with db.get_connection() as conn:
        return CalibrationQueries.get_history(conn, user_id)


class TestCalibrate:
    """Tests for calibrate."""

    def test_calibrated(self, temp_db, now, settings, two_week_log):
        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", now, settings)

        assert result.status == CalibrationStatus.CALIBRATED
        assert result.old_target == 2000
        assert result.new_target == 2145
        assert result.adjustment == 145
        assert result.confidence == "medium"
        assert result.metrics.logged_days == 14
        assert result.metrics.weight_entries == 3
        assert result.metrics.avg_daily_calories == pytest.approx(1800)
        assert result.metrics.actual_weight_change == pytest.approx(0.1)

        assert _target(temp_db) == 2145
        history = _history(temp_db)
        assert len(history) == 1
        record = history[0]
        assert record.old_target == 2000
        assert record.new_target == 2145
        assert record.data_points_analyzed == 17
        assert record.confidence == "medium"
        assert record.date == now.date()
        assert record.reason == result.reason

    def test_insufficient_weights_writes_nothing(
        self, temp_db, now, settings, make_user, add_weights, add_meals
    ):
        make_user()
        add_weights("alice", [(10, 80.0), (2, 79.0)])
        add_meals("alice", [(d, 1800) for d in range(14)])

        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", now, settings)

        assert result.status == CalibrationStatus.INSUFFICIENT_DATA
        assert "weight entries" in result.reason
        assert result.new_target is None
        assert _target(temp_db) == 2000
        assert _history(temp_db) == []

    def test_insufficient_food_days(
        self, temp_db, now, settings, make_user, add_weights, add_meals
    ):
        make_user()
        add_weights("alice", [(12, 80.0), (6, 79.5), (1, 79.0)])
        add_meals("alice", [(d, 1800) for d in range(6)])

        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", now, settings)

        assert result.status == CalibrationStatus.INSUFFICIENT_DATA
        assert "food logs" in result.reason
        assert _history(temp_db) == []

    def test_within_tolerance(self, temp_db, now, settings, make_user, add_weights, add_meals):
        make_user()
        add_weights("alice", [(13, 80.0), (6, 80.2), (0, 80.3)])
        add_meals("alice", [(d, 1800) for d in range(14)])

        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", now, settings)

        assert result.status == CalibrationStatus.NO_ADJUSTMENT_NEEDED
        assert result.metrics is not None
        assert _target(temp_db) == 2000
        assert _history(temp_db) == []

    def test_gaining_more_than_expected_lowers_target(
        self, temp_db, now, settings, make_user, add_weights, add_meals
    ):
        make_user(goal="maintain")
        add_weights("alice", [(13, 70.0), (6, 70.5), (0, 71.0)])
        add_meals("alice", [(d, 2000) for d in range(14)])

        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", now, settings)

        assert result.status == CalibrationStatus.CALIBRATED
        assert result.new_target == 1800
        assert result.confidence == "high"

    def test_pound_logs_match_kg_logs(
        self, temp_db, now, settings, make_user, add_weights, add_meals
    ):
        kg_per_lb = settings.calibration.kg_per_lb
        make_user("kilo")
        make_user("pound")
        add_weights("kilo", [(13, 80.0), (7, 80.05), (0, 80.1)])
        add_weights(
            "pound",
            [(13, 80.0 / kg_per_lb), (7, 80.05 / kg_per_lb), (0, 80.1 / kg_per_lb)],
            unit="lbs",
        )
        add_meals("kilo", [(d, 1800) for d in range(14)])
        add_meals("pound", [(d, 1800) for d in range(14)])

        with temp_db.get_connection() as conn:
            kilo = calibrate(conn, "kilo", now, settings)
            pound = calibrate(conn, "pound", now, settings)

        assert kilo.new_target == pound.new_target == 2145

    def test_trend_method(self, temp_db, now, settings, two_week_log):
        settings.calibration.weight_change_method = "trend"
        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", now, settings)

        # The damped change is below the raw 0.1 kg, so the increase hits the cap
        assert result.status == CalibrationStatus.CALIBRATED
        assert result.metrics.actual_weight_change < 0.1
        assert result.adjustment == 150

    def test_missing_profile(self, temp_db, now, settings):
        with temp_db.get_connection() as conn:
            with pytest.raises(ProfileNotFoundError) as exc_info:
                calibrate(conn, "ghost", now, settings)
        assert exc_info.value.user_id == "ghost"

    def test_second_run_without_new_data(self, temp_db, now, settings, two_week_log):
        with temp_db.get_connection() as conn:
            first = calibrate(conn, "alice", now, settings)
            second = calibrate(conn, "alice", now, settings)

        assert first.status == CalibrationStatus.CALIBRATED
        assert second.status == CalibrationStatus.NO_ADJUSTMENT_NEEDED
        assert "no new data" in second.reason
        assert _target(temp_db) == 2145
        assert len(_history(temp_db)) == 1

    def test_new_data_allows_another_run(
        self, temp_db, now, settings, two_week_log, add_weights, add_meals
    ):
        with temp_db.get_connection() as conn:
            calibrate(conn, "alice", now, settings)

        later = now + timedelta(days=7)
        add_weights("alice", [(0, 79.0)], end=later)
        add_meals("alice", [(d, 2145) for d in range(7)], end=later)

        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", later, settings)

        assert result.status != CalibrationStatus.INSUFFICIENT_DATA
        assert "no new data" not in result.reason

    def test_deleted_meal_allows_another_run(self, temp_db, now, settings, two_week_log):
        with temp_db.get_connection() as conn:
            calibrate(conn, "alice", now, settings)
            meals = FoodQueries.get_food_between(
                conn, "alice", (now - timedelta(days=14)).date(), now.date()
            )
            assert FoodQueries.delete_food(conn, "alice", meals[5].log_id) is True

        with temp_db.get_connection() as conn:
            result = calibrate(conn, "alice", now, settings)

        # 13 logged days at 1800 against 2145 still predicts a larger loss than seen
        assert result.status == CalibrationStatus.CALIBRATED
        assert "no new data" not in result.reason
        assert result.new_target == 2295
        assert _target(temp_db) == 2295
        assert len(_history(temp_db)) == 2



class TestTriggerCalibration:
    """Tests for the manual trigger."""

    def test_requires_identity(self, temp_db, now, settings, two_week_log):
        with temp_db.get_connection() as conn:
            with pytest.raises(NotAuthenticatedError):
                trigger_calibration(conn, None, now, settings)
            with pytest.raises(NotAuthenticatedError):
                trigger_calibration(conn, "", now, settings)
        assert _history(temp_db) == []

    def test_runs_for_caller(self, temp_db, now, settings, two_week_log):
        with temp_db.get_connection() as conn:
            result = trigger_calibration(conn, "alice", now, settings)
        assert result.status == CalibrationStatus.CALIBRATED

    def test_unknown_caller(self, temp_db, now, settings):
        with temp_db.get_connection() as conn:
            with pytest.raises(ProfileNotFoundError):
                trigger_calibration(conn, "ghost", now, settings)


class TestApplyAdjustment:
    """Tests for the atomic target update."""

    def test_stale_target_rolls_back(self, temp_db, now, make_user):
        make_user()
        with temp_db.get_connection() as conn:
            UserQueries.set_calorie_target(conn, "alice", 2100)
            with pytest.raises(StaleTargetError):
                apply_adjustment(conn, "alice", 2000, 2145, "test", 17, "medium", now)

        assert _target(temp_db) == 2100
        assert _history(temp_db) == []

    def test_missing_profile(self, temp_db, now):
        with temp_db.get_connection() as conn:
            with pytest.raises(ProfileNotFoundError):
                apply_adjustment(conn, "ghost", 2000, 2145, "test", 17, "medium", now)
        assert _history(temp_db, "ghost") == []

    def test_writes_target_and_record(self, temp_db, now, make_user):
        make_user()
        with temp_db.get_connection() as conn:
            record = apply_adjustment(conn, "alice", 2000, 1850, "test", 20, "high", now)

        assert record.record_id is not None
        assert record.adjustment == -150
        assert _target(temp_db) == 1850
        assert [r.record_id for r in _history(temp_db)] == [record.record_id]


class TestRunBatch:
    """Tests for run_batch."""

    def test_onboarded_users_only(self, temp_db, now, settings, two_week_log, make_user):
        make_user("newbie", onboarded=False)
        summary = run_batch(temp_db, now, settings)

        assert list(summary.results) == ["alice"]
        assert summary.count(CalibrationStatus.CALIBRATED) == 1

    def test_counts_per_status(self, temp_db, now, settings, two_week_log, make_user):
        make_user("sparse")
        summary = run_batch(temp_db, now, settings)

        data = summary.to_dict()
        assert data["processed"] == 2
        assert data["calibrated"] == 1
        assert data["insufficient_data"] == 1
        assert data["failed"] == {}

    def test_failure_does_not_stop_batch(
        self, temp_db, now, settings, two_week_log, make_user, monkeypatch, caplog
    ):
        make_user("broken", created=now - timedelta(days=90))

        import bob.calibration.service as service

        original = service.calibrate

        def flaky(conn, user_id, *args, **kwargs):
            if user_id == "broken":
                raise RuntimeError("database exploded")
            return original(conn, user_id, *args, **kwargs)

        monkeypatch.setattr(service, "calibrate", flaky)

        with caplog.at_level(logging.ERROR, logger="bob"):
            summary = run_batch(temp_db, now, settings)

        assert summary.failed == {"broken": "database exploded"}
        assert summary.results["alice"].status == CalibrationStatus.CALIBRATED
        assert summary.processed == 2
        assert "Calibration failed for user broken" in caplog.text


class TestHistoryAndLatest:
    """Tests for history and latest calibration lookups."""

    def test_history_newest_first(self, temp_db, now, make_user):
        make_user()
        with temp_db.get_connection() as conn:
            apply_adjustment(conn, "alice", 2000, 2100, "first", 17, "medium", now)
            apply_adjustment(
                conn, "alice", 2100, 2050, "second", 17, "medium", now + timedelta(days=7)
            )
            history = get_calibration_history(conn, "alice")

        assert [r.reason for r in history] == ["second", "first"]

    def test_history_limit(self, temp_db, now, make_user):
        make_user()
        with temp_db.get_connection() as conn:
            target = 2000
            for week in range(4):
                apply_adjustment(
                    conn, "alice", target, target + 50, f"week {week}", 17, "medium",
                    now + timedelta(days=7 * week),
                )
                target += 50
            history = get_calibration_history(conn, "alice", limit=2)

        assert [r.reason for r in history] == ["week 3", "week 2"]

    def test_latest_none(self, temp_db, now, settings, make_user):
        make_user()
        with temp_db.get_connection() as conn:
            assert get_latest_calibration(conn, "alice", now, settings) is None

    def test_latest_recent(self, temp_db, now, settings, make_user):
        make_user()
        with temp_db.get_connection() as conn:
            apply_adjustment(conn, "alice", 2000, 2100, "test", 17, "medium",
                             now - timedelta(days=3))
            insight = get_latest_calibration(conn, "alice", now, settings)

        assert insight.is_recent is True
        assert insight.weeks_since == 0
        assert insight.to_dict()["new_target"] == 2100

    def test_latest_old(self, temp_db, now, settings, make_user):
        make_user()
        with temp_db.get_connection() as conn:
            apply_adjustment(conn, "alice", 2000, 2100, "test", 17, "medium",
                             now - timedelta(days=22))
            insight = get_latest_calibration(conn, "alice", now, settings)

        assert insight.is_recent is False
        assert insight.weeks_since == 3


class TestShouldCalibrate:
    """Tests for should_calibrate."""

    def test_due_after_interval_with_data(
        self, temp_db, now, settings, make_user, add_weights, add_meals
    ):
        make_user()
        add_weights("alice", [(d, 80.0 - d * 0.1) for d in range(8)])
        add_meals("alice", [(d, 600) for d in range(10)], meal_label="lunch")
        add_meals("alice", [(d, 1200) for d in range(10)], meal_label="dinner")

        with temp_db.get_connection() as conn:
            check = should_calibrate(conn, "alice", now, settings)

        assert check.needed is True
        assert "since your last calibration" in check.reason
        assert check.data_points == {"weight_logs": 8, "food_logs": 20}

    def test_not_due_after_recent_calibration(
        self, temp_db, now, settings, make_user, add_weights, add_meals
    ):
        make_user()
        add_weights("alice", [(d, 80.0 - d * 0.2) for d in range(8)])
        add_meals("alice", [(d, 1800) for d in range(14)])
        with temp_db.get_connection() as conn:
            apply_adjustment(conn, "alice", 2000, 2100, "test", 17, "medium",
                             now - timedelta(days=2))
            check = should_calibrate(conn, "alice", now, settings)

        assert check.needed is False

    def test_plateau(self, temp_db, now, settings, make_user, add_weights):
        make_user(goal="cut")
        add_weights("alice", [(d, 80.0 + (0.1 if d % 2 else 0.0)) for d in range(6)])
        with temp_db.get_connection() as conn:
            check = should_calibrate(conn, "alice", now, settings)

        assert check.needed is True
        assert "plateau" in check.reason
        assert check.data_points["days_on_plateau"] == 10

    def test_no_plateau_when_maintaining(self, temp_db, now, settings, make_user, add_weights):
        make_user(goal="maintain")
        add_weights("alice", [(d, 80.0) for d in range(6)])
        with temp_db.get_connection() as conn:
            check = should_calibrate(conn, "alice", now, settings)

        assert check.needed is False
        assert check.reason == "No calibration needed right now."

    def test_missing_profile(self, temp_db, now, settings):
        with temp_db.get_connection() as conn:
            with pytest.raises(ProfileNotFoundError):
                should_calibrate(conn, "ghost", now, settings)
