"""
Pure chat session reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from constants import (
    MEMORY_ACTIVITY_LABEL,
    PROVIDER_ACTIVITY_LABEL,
    SEND_FAILURE_PREFIX,
    STREAM_ERROR_PREFIX,
    TOOL_ACTIVITY_LABEL,
)
from context.hydration import hydrate
from orchestrator.commands import (
    Command,
    LogEvent,
    ReloadCatalog,
    ResetSubscription,
    SendToAgent,
)
from orchestrator.enums.activity_kind import ActivityKind
from orchestrator.enums.role import Role
from orchestrator.enums.state import State
from orchestrator.enums.tool_status import ToolStatus
from orchestrator.events import (
    Done,
    Event,
    MemoryRecall,
    NewSessionRequested,
    ProviderCallEnd,
    ProviderCallStart,
    SendFailed,
    SendSucceeded,
    SessionResumed,
    StreamError,
    StreamEvent,
    TextChunk,
    ToolCallResult,
    ToolCallStart,
    UserMessageSubmitted,
)
from orchestrator.state_dataclass import (
    Activity,
    ChatMessage,
    ChatState,
    ToolCallActivity,
)


# =============================================================================
# Invariants
# =============================================================================
# - At most one turn in flight: USER_MESSAGE_SUBMITTED is ignored while STREAMING
# - Stream events apply only while STREAMING
# - Terminal events (Done / Error) always empty tool calls and activities
# - Session identifier is reassigned on Done and on a SendSucceeded for the
#   turn still streaming; never on Error or SendFailed
# - Generation bumps on every new/resumed session
# - Send completions apply only to the streaming turn they were issued for
#   (same generation and turn_id); all others are ignored


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: ChatState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "session_id": state.session_id,
            "generation": state.generation,
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(
    state: ChatState, event: Event, reason: str
) -> tuple[ChatState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _state_changed(
    prev: ChatState, new: ChatState, event: Event, source: str
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_state": prev.state.value,
            "to_state": new.state.value,
            "source": source,
        },
    )


def _clear_turn(state: ChatState) -> ChatState:
    """
    Drop all turn-scoped state (in-flight text, tool calls, activities).

    State-only helper; callers decide the resulting control state.
    """
    return replace(
        state,
        streaming_content="",
        active_tool_calls=(),
        activities=(),
    )


def _append_message(
    state: ChatState,
    role: Role,
    content: str,
) -> ChatState:
    message = ChatMessage(id=state.next_message_id, role=role, content=content)
    return replace(
        state,
        messages=state.messages + (message,),
        next_message_id=state.next_message_id + 1,
    )


def _append_activity(
    state: ChatState,
    event: Event,
    kind: ActivityKind,
    label: str,
) -> ChatState:
    activity = Activity(
        id=f"{kind.value}-{state.next_activity_seq}",
        label=label,
        kind=kind,
        timestamp_ms=event.ts_ms,
    )
    return replace(
        state,
        activities=state.activities + (activity,),
        next_activity_seq=state.next_activity_seq + 1,
    )


def _find_running_tool_call(
    calls: tuple[ToolCallActivity, ...],
    event: ToolCallResult,
) -> int | None:
    """
    Index of the tool call a result resolves, or None.

    Correlates by call_id when the backend supplied one on both sides.
    Otherwise the most recently added running call with the same name;
    with concurrent same-named calls this is a best guess, since the
    stream carries nothing stronger.
    """
    if event.call_id is not None:
        for index in range(len(calls) - 1, -1, -1):
            tc = calls[index]
            if tc.status is ToolStatus.RUNNING and tc.call_id == event.call_id:
                return index

    for index in range(len(calls) - 1, -1, -1):
        tc = calls[index]
        if tc.status is ToolStatus.RUNNING and tc.name == event.name:
            return index

    return None


# =============================================================================
# User commands
# =============================================================================

def _on_user_message(
    state: ChatState, event: UserMessageSubmitted
) -> tuple[ChatState, tuple[Command, ...]]:
    content = event.content.strip()
    if not content:
        return _ignore(state, event, "empty_message")

    if state.state is State.STREAMING:
        return _ignore(state, event, "turn_in_flight")

    # Order matters: the user message is in the transcript before the
    # outbound send is issued.
    new_state = _append_message(state, Role.USER, content)
    turn_id = new_state.next_message_id - 1
    new_state = _clear_turn(
        replace(new_state, state=State.STREAMING, turn_id=turn_id)
    )

    return (
        new_state,
        _logs_last((
            SendToAgent(
                generation=new_state.generation,
                turn_id=turn_id,
                session_id=new_state.session_id,
                message=content,
            ),
            _log(
                new_state,
                event,
                "user_message_submitted",
                {
                    "message_id": turn_id,
                    "content_len": len(content),
                },
            ),
            _state_changed(state, new_state, event, "user_message_submitted"),
        )),
    )


def _on_new_session(
    state: ChatState, event: NewSessionRequested
) -> tuple[ChatState, tuple[Command, ...]]:
    new_state = ChatState(generation=state.generation + 1)
    return (
        new_state,
        _logs_last((
            ResetSubscription(generation=new_state.generation),
            _log(
                new_state,
                event,
                "new_session",
                {
                    "previous_session_id": state.session_id,
                    "discarded_messages": len(state.messages),
                },
            ),
            _state_changed(state, new_state, event, "new_session"),
        )),
    )


def _on_session_resumed(
    state: ChatState, event: SessionResumed
) -> tuple[ChatState, tuple[Command, ...]]:
    new_state = hydrate(event.detail, generation=state.generation + 1)
    return (
        new_state,
        _logs_last((
            ResetSubscription(generation=new_state.generation),
            _log(
                new_state,
                event,
                "session_resumed",
                {
                    "previous_session_id": state.session_id,
                    "message_count": len(new_state.messages),
                },
            ),
            _state_changed(state, new_state, event, "session_resumed"),
        )),
    )


# =============================================================================
# Outbound send completion
# =============================================================================

def _send_result_ignore_reason(
    state: ChatState, event: SendSucceeded | SendFailed
) -> str | None:
    """
    Why a send completion must not apply, or None when it belongs to
    the turn currently streaming.
    """
    if event.generation != state.generation or event.turn_id != state.turn_id:
        return "send_result_stale"
    if state.state is not State.STREAMING:
        # Done or Error already closed this turn
        return "turn_already_ended"
    return None


def _on_send_succeeded(
    state: ChatState, event: SendSucceeded
) -> tuple[ChatState, tuple[Command, ...]]:
    reason = _send_result_ignore_reason(state, event)
    if reason is not None:
        return _ignore(state, event, reason)

    new_state = replace(state, session_id=event.session_id)
    return new_state, (
        _log(
            new_state,
            event,
            "session_id_assigned",
            {"previous_session_id": state.session_id, "source": "send"},
        ),
    )


def _on_send_failed(
    state: ChatState, event: SendFailed
) -> tuple[ChatState, tuple[Command, ...]]:
    reason = _send_result_ignore_reason(state, event)
    if reason is not None:
        return _ignore(state, event, reason)

    # The backend never started the turn: no terminal event will follow.
    new_state = _append_message(
        state, Role.ASSISTANT, f"{SEND_FAILURE_PREFIX}{event.reason}"
    )
    new_state = _clear_turn(replace(new_state, state=State.IDLE))
    return (
        new_state,
        _logs_last((
            _log(new_state, event, "send_failed", {"reason": event.reason}),
            _state_changed(state, new_state, event, "send_failed"),
        )),
    )


# =============================================================================
# Agent stream
# =============================================================================

def _on_stream_event(
    state: ChatState, event: StreamEvent
) -> tuple[ChatState, tuple[Command, ...]]:
    if state.state is not State.STREAMING:
        # Late events from a reset or finished turn
        return _ignore(state, event, "no_turn_in_flight")

    if isinstance(event, TextChunk):
        new_state = replace(
            state, streaming_content=state.streaming_content + event.content
        )
        return new_state, (
            _log(new_state, event, "append_text", {"chunk_len": len(event.content)}),
        )

    if isinstance(event, ToolCallStart):
        call = ToolCallActivity(
            name=event.name,
            arguments=event.arguments,
            call_id=event.call_id,
        )
        new_state = replace(state, active_tool_calls=state.active_tool_calls + (call,))
        new_state = _append_activity(
            new_state,
            event,
            ActivityKind.TOOL,
            TOOL_ACTIVITY_LABEL.format(name=event.name),
        )
        return new_state, (
            _log(
                new_state,
                event,
                "tool_call_started",
                {"name": event.name, "call_id": event.call_id},
            ),
        )

    if isinstance(event, ToolCallResult):
        index = _find_running_tool_call(state.active_tool_calls, event)
        if index is None:
            return _ignore(state, event, "tool_result_unmatched")

        calls = list(state.active_tool_calls)
        calls[index] = replace(
            calls[index],
            status=ToolStatus.SUCCESS if event.success else ToolStatus.ERROR,
            output=event.output,
        )
        new_state = replace(state, active_tool_calls=tuple(calls))
        return new_state, (
            _log(
                new_state,
                event,
                "tool_result_applied",
                {
                    "name": event.name,
                    "call_id": event.call_id,
                    "success": event.success,
                    "index": index,
                },
            ),
        )

    if isinstance(event, MemoryRecall):
        new_state = _append_activity(
            state,
            event,
            ActivityKind.MEMORY,
            MEMORY_ACTIVITY_LABEL.format(results_count=event.results_count),
        )
        return new_state, (
            _log(
                new_state,
                event,
                "memory_recall",
                {"results_count": event.results_count},
            ),
        )

    if isinstance(event, ProviderCallStart):
        new_state = _append_activity(
            state,
            event,
            ActivityKind.PROVIDER,
            PROVIDER_ACTIVITY_LABEL.format(provider=event.provider, model=event.model),
        )
        return new_state, (
            _log(
                new_state,
                event,
                "provider_call_started",
                {"provider": event.provider, "model": event.model},
            ),
        )

    if isinstance(event, ProviderCallEnd):
        # Informational: no activity is updated or removed.
        return state, (
            _log(state, event, "provider_call_ended", {"duration_ms": event.duration_ms}),
        )

    if isinstance(event, Done):
        return _on_done(state, event)

    if isinstance(event, StreamError):
        return _on_stream_error(state, event)

    return _ignore(state, event, "unhandled_stream_event")


def _on_done(state: ChatState, event: Done) -> tuple[ChatState, tuple[Command, ...]]:
    new_state = state
    committed = bool(state.streaming_content)
    if committed:
        new_state = _append_message(new_state, Role.ASSISTANT, state.streaming_content)

    abandoned = sum(
        1 for tc in state.active_tool_calls if tc.status is ToolStatus.RUNNING
    )

    new_state = _clear_turn(
        replace(new_state, state=State.IDLE, session_id=event.session_id)
    )

    return (
        new_state,
        _logs_last((
            ReloadCatalog(reason="turn_done"),
            _log(
                new_state,
                event,
                "turn_done",
                {
                    "committed": committed,
                    "assistant_len": len(state.streaming_content),
                    "abandoned_tool_calls": abandoned,
                    "previous_session_id": state.session_id,
                },
            ),
            _state_changed(state, new_state, event, "turn_done"),
        )),
    )


def _on_stream_error(
    state: ChatState, event: StreamError
) -> tuple[ChatState, tuple[Command, ...]]:
    new_state = _append_message(
        state, Role.ASSISTANT, f"{STREAM_ERROR_PREFIX}{event.message}"
    )
    new_state = _clear_turn(replace(new_state, state=State.IDLE))
    return (
        new_state,
        _logs_last((
            _log(
                new_state,
                event,
                "turn_error",
                {
                    "message": event.message,
                    "discarded_text_len": len(state.streaming_content),
                },
            ),
            _state_changed(state, new_state, event, "turn_error"),
        )),
    )


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: ChatState, event: Event
) -> tuple[ChatState, tuple[Command, ...]]:
    """
    Pure reducer for the chat session state machine.

    Given the current session state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Turn-safe: ignores send completions from a superseded session or turn
    """
    if isinstance(event, StreamEvent):
        return _on_stream_event(state, event)

    if isinstance(event, UserMessageSubmitted):
        return _on_user_message(state, event)

    if isinstance(event, SendSucceeded):
        return _on_send_succeeded(state, event)

    if isinstance(event, SendFailed):
        return _on_send_failed(state, event)

    if isinstance(event, NewSessionRequested):
        return _on_new_session(state, event)

    if isinstance(event, SessionResumed):
        return _on_session_resumed(state, event)

    return _ignore(state, event, "unhandled_event")
