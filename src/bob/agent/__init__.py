"""Machine-readable output for agents and scripts."""

from __future__ import annotations

from bob.agent.response import AgentResponse, create_response, error_response

__all__ = ["AgentResponse", "create_response", "error_response"]
