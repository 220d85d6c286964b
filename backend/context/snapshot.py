"""
Render-ready snapshot serialization.

Responsibilities:
- Convert ChatState into a JSON-safe dict for UI consumers.

Output format:
{
    "session_id": "..." | None,
    "is_streaming": bool,
    "messages": [{"id": "msg-0", "role": "user", "content": "...", ...}],
    "streaming_content": "...",
    "active_tool_calls": [{"name", "arguments", "status", "output"}],
    "activities": [{"id", "label", "type", "timestamp"}],
}

Non-responsibilities:
- No markdown or tool-detail rendering
- No logging
"""

from __future__ import annotations

from typing import Any

from constants import MESSAGE_ID_PREFIX
from orchestrator.enums.state import State
from orchestrator.state_dataclass import Activity, ChatMessage, ChatState, ToolCallActivity


def message_key(message_id: int) -> str:
    return f"{MESSAGE_ID_PREFIX}{message_id}"


def _message(m: ChatMessage) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": message_key(m.id),
        "role": m.role.value,
        "content": m.content,
    }
    # Tool fields are omitted rather than null, matching the persisted shape
    if m.tool_name is not None:
        out["tool_name"] = m.tool_name
    if m.tool_args is not None:
        out["tool_args"] = m.tool_args
    if m.tool_success is not None:
        out["tool_success"] = m.tool_success
    return out


def _tool_call(tc: ToolCallActivity) -> dict[str, Any]:
    return {
        "name": tc.name,
        "arguments": tc.arguments,
        "status": tc.status.value,
        "output": tc.output,
    }


def _activity(a: Activity) -> dict[str, Any]:
    return {
        "id": a.id,
        "label": a.label,
        "type": a.kind.value,
        "timestamp": a.timestamp_ms,
    }


def serialize_state(state: ChatState) -> dict[str, Any]:
    """Serialize the full session state for one UI frame."""
    return {
        "session_id": state.session_id,
        "is_streaming": state.state is State.STREAMING,
        "messages": [_message(m) for m in state.messages],
        "streaming_content": state.streaming_content,
        "active_tool_calls": [_tool_call(tc) for tc in state.active_tool_calls],
        "activities": [_activity(a) for a in state.activities],
    }
