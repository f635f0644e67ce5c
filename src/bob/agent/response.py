"""Response envelope for machine-readable JSON output."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from bob.errors import BobError


@dataclass
class AgentResponse:
    """Standard envelope printed by every CLI command run with --json.

    Callers (the app frontend, scripts, LLM tools) can rely on ``success``
    and ``errors`` regardless of the command.
    """

    success: bool
    command: str
    data: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    human_summary: str = ""
    schema_version: str = "1.0"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "command": self.command,
            "data": self.data,
            "errors": self.errors,
            "suggestions": self.suggestions,
            "human_summary": self.human_summary,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "schema_version": self.schema_version,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def create_response(
    command: str,
    data: Optional[dict[str, Any]] = None,
    human_summary: str = "",
    suggestions: Optional[list[str]] = None,
) -> AgentResponse:
    """Create a successful AgentResponse."""
    return AgentResponse(
        success=True,
        command=command,
        data=data or {},
        suggestions=suggestions or [],
        human_summary=human_summary,
    )


def error_response(
    command: str,
    error: str | BobError,
    suggestions: Optional[list[str]] = None,
) -> AgentResponse:
    """
    Create an error response.

    Args:
        command: The command that failed
        error: Error message or caller-facing exception
        suggestions: Suggestions for fixing the error

    Returns:
        AgentResponse with success=False
    """
    data: dict[str, Any] = {}
    if isinstance(error, BobError):
        data = dict(error.details)
        error = error.message
    return AgentResponse(
        success=False,
        command=command,
        data=data,
        errors=[error],
        suggestions=suggestions or [],
        human_summary=f"Error: {error}",
    )
