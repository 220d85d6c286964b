"""
Unified event definitions for the chat session reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no async, no side effects.

Two families share one entry point:
- Agent stream events, decoded from the `agent-stream` channel.
  Their EventType values equal the wire discriminants.
- Control events, produced by the runtime for user commands and for
  completion of the outbound send.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from catalog.records import SessionDetail


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every event type must be explicitly handled or explicitly
    ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Agent stream (wire discriminants)
    # ------------------------------------------------------------------
    TEXT_CHUNK = "TextChunk"
    TOOL_CALL_START = "ToolCallStart"
    TOOL_CALL_RESULT = "ToolCallResult"
    MEMORY_RECALL = "MemoryRecall"
    PROVIDER_CALL_START = "ProviderCallStart"
    PROVIDER_CALL_END = "ProviderCallEnd"
    DONE = "Done"
    ERROR = "Error"

    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------
    USER_MESSAGE_SUBMITTED = "USER_MESSAGE_SUBMITTED"
    NEW_SESSION_REQUESTED = "NEW_SESSION_REQUESTED"
    SESSION_RESUMED = "SESSION_RESUMED"

    # ------------------------------------------------------------------
    # Outbound send completion
    # ------------------------------------------------------------------
    SEND_SUCCEEDED = "SEND_SUCCEEDED"
    SEND_FAILED = "SEND_FAILED"


# =============================================================================
# Base Events
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class StreamEvent(Event):
    """
    Base class for events delivered through the agent stream channel.

    Stream events only apply while a turn is in flight.
    """


# =============================================================================
# Agent Stream Events
# =============================================================================

@dataclass(frozen=True)
class TextChunk(StreamEvent):
    """A chunk of assistant text."""
    content: str


@dataclass(frozen=True)
class ToolCallStart(StreamEvent):
    """
    A tool call has started executing on the backend.

    call_id is set only when the backend assigns one.
    """
    name: str
    arguments: str
    call_id: str | None = None


@dataclass(frozen=True)
class ToolCallResult(StreamEvent):
    """A tool call has completed."""
    name: str
    success: bool
    output: str
    call_id: str | None = None


@dataclass(frozen=True)
class MemoryRecall(StreamEvent):
    """Memory was queried for context."""
    query: str
    results_count: int


@dataclass(frozen=True)
class ProviderCallStart(StreamEvent):
    """An LLM provider call has started."""
    provider: str
    model: str


@dataclass(frozen=True)
class ProviderCallEnd(StreamEvent):
    """An LLM provider call has ended. Informational only."""
    duration_ms: int


@dataclass(frozen=True)
class Done(StreamEvent):
    """
    Terminal: the agent loop completed the turn.

    session_id is authoritative and replaces the local identifier.
    """
    session_id: str


@dataclass(frozen=True)
class StreamError(StreamEvent):
    """Terminal: the backend attempted the turn and failed."""
    message: str


# =============================================================================
# User Command Events
# =============================================================================

@dataclass(frozen=True)
class UserMessageSubmitted(Event):
    """User asked to send a message in the current session."""
    content: str


@dataclass(frozen=True)
class NewSessionRequested(Event):
    """User started a new, empty chat."""


@dataclass(frozen=True)
class SessionResumed(Event):
    """User resumed a persisted conversation."""
    detail: SessionDetail


# =============================================================================
# Send Completion Events
# =============================================================================

@dataclass(frozen=True)
class SendSucceeded(Event):
    """
    The outbound send returned a session identifier.

    generation is the state generation at the time the send was issued;
    turn_id is the id of the user message that opened the turn.
    """
    generation: int
    turn_id: int
    session_id: str


@dataclass(frozen=True)
class SendFailed(Event):
    """
    The outbound send raised before the backend started the turn.
    """
    generation: int
    turn_id: int
    reason: str
