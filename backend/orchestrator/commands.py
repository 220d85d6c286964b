"""
Side-effect command definitions for the chat session reducer.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.

Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    Stable discriminants used for logging and runtime dispatch.
    """

    # Agent backend
    SEND_TO_AGENT = "SEND_TO_AGENT"

    # Event channel
    RESET_SUBSCRIPTION = "RESET_SUBSCRIPTION"

    # Session catalog
    RELOAD_CATALOG = "RELOAD_CATALOG"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Agent Backend Commands
# =============================================================================

@dataclass(frozen=True)
class SendToAgent(Command):
    """
    Request to issue the outbound send.

    The runtime must answer with exactly one SendSucceeded or SendFailed
    carrying the same generation and turn_id.
    """
    generation: int
    turn_id: int
    session_id: str | None
    message: str
    command_type: CommandType = CommandType.SEND_TO_AGENT


# =============================================================================
# Event Channel Commands
# =============================================================================

@dataclass(frozen=True)
class ResetSubscription(Command):
    """
    Invalidate the current stream subscription and subscribe again
    under the given generation.
    """
    generation: int
    command_type: CommandType = CommandType.RESET_SUBSCRIPTION


# =============================================================================
# Catalog Commands
# =============================================================================

@dataclass(frozen=True)
class ReloadCatalog(Command):
    """Request to refresh the session list."""
    reason: str
    command_type: CommandType = CommandType.RELOAD_CATALOG


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
