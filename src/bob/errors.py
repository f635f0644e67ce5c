"""Exception types for calibration and profile operations.

Insufficient data is deliberately not an exception: calibration reports it
as a structured ``insufficient_data`` result.
"""

from __future__ import annotations

from typing import Any, Optional


class BobError(Exception):
    """Base class for caller-facing errors.

    Attributes:
        message: Human-readable error message
        details: Additional context for JSON output
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotAuthenticatedError(BobError):
    """Raised when a manual trigger arrives without a caller identity."""

    def __init__(self) -> None:
        super().__init__("Not authenticated")


class ProfileNotFoundError(BobError):
    """Raised when no profile exists for the requested user."""

    def __init__(self, user_id: str):
        super().__init__(
            f"Profile not found for user '{user_id}'",
            details={"user_id": user_id},
        )
        self.user_id = user_id


class StaleTargetError(BobError):
    """Raised when the calorie target changed between read and write."""

    def __init__(self, user_id: str, expected_target: int):
        super().__init__(
            f"Calorie target for user '{user_id}' changed during calibration "
            f"(expected {expected_target})",
            details={"user_id": user_id, "expected_target": expected_target},
        )
        self.user_id = user_id
        self.expected_target = expected_target
