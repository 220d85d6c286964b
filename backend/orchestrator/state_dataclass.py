"""
Authoritative chat session state container.

Rules:
- This module is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass

from orchestrator.enums.activity_kind import ActivityKind
from orchestrator.enums.role import Role
from orchestrator.enums.state import State
from orchestrator.enums.tool_status import ToolStatus


# =============================================================================
# Transcript
# =============================================================================

@dataclass(frozen=True)
class ChatMessage:
    """
    One transcript entry.

    id is local, monotonic and unique within the session state;
    tool_* fields are only meaningful for tool-shaped roles.
    """
    id: int
    role: Role
    content: str
    tool_name: str | None = None
    tool_args: str | None = None
    tool_success: bool | None = None


# =============================================================================
# Turn-scoped state
# =============================================================================

@dataclass(frozen=True)
class ToolCallActivity:
    """A tool invocation observed during the current turn."""
    name: str
    arguments: str
    status: ToolStatus = ToolStatus.RUNNING
    output: str | None = None
    call_id: str | None = None


@dataclass(frozen=True)
class Activity:
    """Display-only progress note. Never referenced by id after creation."""
    id: str
    label: str
    kind: ActivityKind
    timestamp_ms: int


# =============================================================================
# Session State
# =============================================================================

@dataclass(frozen=True)
class ChatState:
    """Immutable snapshot of all controller-owned session state."""

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------
    messages: tuple[ChatMessage, ...] = ()

    # Next local message id; reset to len(messages) on hydration
    next_message_id: int = 0

    # ------------------------------------------------------------------
    # Active turn
    # ------------------------------------------------------------------
    state: State = State.IDLE

    # In-flight assistant text, committed on Done
    streaming_content: str = ""

    active_tool_calls: tuple[ToolCallActivity, ...] = ()
    activities: tuple[Activity, ...] = ()

    # Monotonic suffix for activity ids within the session
    next_activity_seq: int = 0

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    # None until the backend assigns one
    session_id: str | None = None

    # Bumped on every new/resumed session; gates stale completions
    # and stale subscriptions. Never reset.
    generation: int = 0

    # Id of the user message that opened the latest turn; send
    # completions for any other turn are ignored
    turn_id: int | None = None
