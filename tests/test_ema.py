"""Tests for the smoothed weight trend with gap handling."""

from __future__ import annotations

from datetime import date

import pytest

from bob.tracking.ema import (
    DEFAULT_SMOOTHING,
    calculate_trend,
    time_scaled_alpha,
    trend_change,
    update_trend,
)


class TestTimeScaledAlpha:
    """Tests for time_scaled_alpha function."""

    def test_daily_unchanged(self) -> None:
        """Alpha should be unchanged for daily measurements."""
        assert time_scaled_alpha(0.1, 1) == pytest.approx(0.1)

    def test_three_day_gap(self) -> None:
        """After 3 days, alpha should be 1 - 0.9^3."""
        assert time_scaled_alpha(0.1, 3) == pytest.approx(0.271)

    def test_zero_days_treated_as_one(self) -> None:
        """Several readings on one day each count as one day."""
        assert time_scaled_alpha(0.1, 0) == pytest.approx(0.1)
        assert time_scaled_alpha(0.1, -2) == pytest.approx(0.1)

    def test_large_gap_approaches_one(self) -> None:
        assert time_scaled_alpha(0.1, 30) > 0.95


class TestUpdateTrend:
    """Tests for update_trend function."""

    def test_daily_update(self) -> None:
        result = update_trend(80.0, 79.0)
        assert result == pytest.approx(80.0 + DEFAULT_SMOOTHING * (79.0 - 80.0))

    def test_gap_gives_more_weight(self) -> None:
        """Longer gaps move the trend further toward the new reading."""
        daily = update_trend(80.0, 79.0, days_elapsed=1)
        weekly = update_trend(80.0, 79.0, days_elapsed=7)
        assert weekly < daily


class TestCalculateTrend:
    """Tests for calculate_trend function."""

    def test_empty(self) -> None:
        assert calculate_trend([]) == []

    def test_first_reading_seeds_trend(self) -> None:
        trends = calculate_trend([(date(2026, 3, 1), 80.0), (date(2026, 3, 2), 79.0)])
        assert trends[0] == 80.0
        assert trends[1] == pytest.approx(79.9)

    def test_mixed_gaps(self) -> None:
        readings = [
            (date(2026, 3, 1), 80.0),
            (date(2026, 3, 2), 79.5),  # 1-day gap
            (date(2026, 3, 5), 79.0),  # 3-day gap
        ]
        trends = calculate_trend(readings)

        expected_1 = 80.0 + 0.1 * (79.5 - 80.0)
        assert trends[1] == pytest.approx(expected_1)
        alpha_3 = time_scaled_alpha(0.1, 3)
        assert trends[2] == pytest.approx(expected_1 + alpha_3 * (79.0 - expected_1))


class TestTrendChange:
    """Tests for trend_change function."""

    def test_fewer_than_two_readings(self) -> None:
        assert trend_change([]) == 0.0
        assert trend_change([(date(2026, 3, 1), 80.0)]) == 0.0

    def test_smaller_than_net_change_for_spike(self) -> None:
        readings = [(date(2026, 3, d), 80.0) for d in range(1, 8)]
        readings.append((date(2026, 3, 8), 81.0))
        assert trend_change(readings) == pytest.approx(0.1)

    def test_full_smoothing_equals_net_change(self) -> None:
        readings = [(date(2026, 3, 1), 80.0), (date(2026, 3, 4), 79.2)]
        assert trend_change(readings, smoothing=1.0) == pytest.approx(-0.8)
