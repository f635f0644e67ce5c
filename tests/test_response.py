"""Tests for the JSON response envelope and result serialization."""

from __future__ import annotations

import json

from bob.agent.response import create_response, error_response
from bob.calibration.result import CalibrationMetrics, CalibrationResult, CalibrationStatus
from bob.errors import ProfileNotFoundError, StaleTargetError


class TestAgentResponse:
    """Tests for create_response and error_response."""

    def test_success_envelope(self) -> None:
        response = create_response("calibrate run", data={"status": "calibrated"},
                                   human_summary="done")
        data = json.loads(response.to_json())

        assert data["success"] is True
        assert data["command"] == "calibrate run"
        assert data["data"] == {"status": "calibrated"}
        assert data["errors"] == []
        assert data["schema_version"] == "1.0"
        assert "timestamp" in data

    def test_error_from_message(self) -> None:
        response = error_response("food log", "Provide --calories", ["Try --from-file"])
        assert response.success is False
        assert response.errors == ["Provide --calories"]
        assert response.suggestions == ["Try --from-file"]
        assert response.human_summary == "Error: Provide --calories"

    def test_error_from_exception_keeps_details(self) -> None:
        response = error_response("calibrate run", ProfileNotFoundError("ghost"))
        assert response.errors == ["Profile not found for user 'ghost'"]
        assert response.data == {"user_id": "ghost"}

    def test_stale_target_details(self) -> None:
        response = error_response("calibrate run", StaleTargetError("alice", 2000))
        assert response.data == {"user_id": "alice", "expected_target": 2000}


class TestCalibrationResult:
    """Tests for CalibrationResult.to_dict."""

    def test_insufficient_omits_targets(self) -> None:
        result = CalibrationResult.insufficient("Need at least 3 weight entries")
        assert result.to_dict() == {
            "status": "insufficient_data",
            "reason": "Need at least 3 weight entries",
        }
        assert result.applied is False

    def test_calibrated(self) -> None:
        metrics = CalibrationMetrics(
            avg_daily_calories=1800.0,
            actual_weight_change=0.1,
            expected_weight_change=0.363636,
            logged_days=14,
            weight_entries=3,
            start_weight=80.0,
            end_weight=80.1,
        )
        result = CalibrationResult(
            status=CalibrationStatus.CALIBRATED,
            reason="Increasing",
            old_target=2000,
            new_target=2145,
            adjustment=145,
            confidence="medium",
            metrics=metrics,
        )
        data = result.to_dict()

        assert result.applied is True
        assert data["status"] == "calibrated"
        assert data["new_target"] == 2145
        assert data["metrics"]["expected_weight_change"] == 0.364
        assert json.loads(json.dumps(data)) == data
