"""
Agent host client errors.

Raised by AgentHostClient; the runtime converts send failures into a
user-visible transcript message and the catalog mirror logs the rest.
"""

from __future__ import annotations


class AgentHostError(Exception):
    """Base class for agent host transport/backend errors."""


class AgentHostUnavailable(AgentHostError):
    """No connection to the agent host, or it dropped mid-request."""


class InvokeFailed(AgentHostError):
    """The agent host answered an invoke with an error."""

    def __init__(self, command: str, error: str) -> None:
        super().__init__(f"{command}: {error}")
        self.command = command
        self.error = error


class InvokeTimeout(AgentHostError):
    """No invoke reply arrived in time."""

    def __init__(self, command: str, timeout_s: float) -> None:
        super().__init__(f"{command}: no reply within {timeout_s:.1f}s")
        self.command = command
        self.timeout_s = timeout_s
