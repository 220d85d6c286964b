"""
Agent stream wire codec.

The agent host emits internally tagged JSON objects on the
`agent-stream` channel:

    {"type": "TextChunk", "content": "Hi"}
    {"type": "ToolCallStart", "name": "search", "arguments": "{}"}
    {"type": "ToolCallResult", "name": "search", "success": true, "output": "..."}
    {"type": "MemoryRecall", "query": "...", "results_count": 3}
    {"type": "ProviderCallStart", "provider": "anthropic", "model": "..."}
    {"type": "ProviderCallEnd", "duration_ms": 812}
    {"type": "Done", "session_id": "..."}
    {"type": "Error", "message": "..."}

Tool events may carry an optional "call_id".

Usage example:

    try:
        event = decode_stream_event(payload, ts_ms=now_ms())
    except StreamProtocolError as e:
        log_event({"event_type": "STREAM_EVENT_REJECTED", "error": str(e)})
        return
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from constants import STREAM_TYPE_KEY
from orchestrator.events import (
    Done,
    EventType,
    MemoryRecall,
    ProviderCallEnd,
    ProviderCallStart,
    StreamError,
    StreamEvent,
    TextChunk,
    ToolCallResult,
    ToolCallStart,
)


# -------------------------
# Exceptions
# -------------------------

class StreamProtocolError(Exception):
    """Base class for stream payload errors."""


class UnknownEventType(StreamProtocolError):
    """
    Raised when the discriminant names no known stream event.
    """


class MalformedEvent(StreamProtocolError):
    """
    Raised when a known event is missing a field or a field has the wrong type.
    """


# -------------------------
# Field helpers
# -------------------------

def _str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise MalformedEvent(
            f"{payload.get(STREAM_TYPE_KEY)}.{key}: expected str, got {type(value).__name__}"
        )
    return value


def _opt_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedEvent(f"{payload.get(STREAM_TYPE_KEY)}.{key}: expected str or null")
    return value


def _bool(payload: Mapping[str, Any], key: str) -> bool:
    value = payload.get(key)
    if not isinstance(value, bool):
        raise MalformedEvent(
            f"{payload.get(STREAM_TYPE_KEY)}.{key}: expected bool, got {type(value).__name__}"
        )
    return value


def _count(payload: Mapping[str, Any], key: str) -> int:
    """Non-negative integer (bool is rejected even though it is an int)."""
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedEvent(
            f"{payload.get(STREAM_TYPE_KEY)}.{key}: expected non-negative int, got {value!r}"
        )
    return value


# -------------------------
# Decoders
# -------------------------

def _text_chunk(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return TextChunk(event_type=EventType.TEXT_CHUNK, ts_ms=ts_ms, content=_str(p, "content"))


def _tool_call_start(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return ToolCallStart(
        event_type=EventType.TOOL_CALL_START,
        ts_ms=ts_ms,
        name=_str(p, "name"),
        arguments=_str(p, "arguments"),
        call_id=_opt_str(p, "call_id"),
    )


def _tool_call_result(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return ToolCallResult(
        event_type=EventType.TOOL_CALL_RESULT,
        ts_ms=ts_ms,
        name=_str(p, "name"),
        success=_bool(p, "success"),
        output=_str(p, "output"),
        call_id=_opt_str(p, "call_id"),
    )


def _memory_recall(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return MemoryRecall(
        event_type=EventType.MEMORY_RECALL,
        ts_ms=ts_ms,
        query=_str(p, "query"),
        results_count=_count(p, "results_count"),
    )


def _provider_call_start(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return ProviderCallStart(
        event_type=EventType.PROVIDER_CALL_START,
        ts_ms=ts_ms,
        provider=_str(p, "provider"),
        model=_str(p, "model"),
    )


def _provider_call_end(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return ProviderCallEnd(
        event_type=EventType.PROVIDER_CALL_END,
        ts_ms=ts_ms,
        duration_ms=_count(p, "duration_ms"),
    )


def _done(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return Done(event_type=EventType.DONE, ts_ms=ts_ms, session_id=_str(p, "session_id"))


def _error(p: Mapping[str, Any], ts_ms: int) -> StreamEvent:
    return StreamError(event_type=EventType.ERROR, ts_ms=ts_ms, message=_str(p, "message"))


_DECODERS: dict[str, Callable[[Mapping[str, Any], int], StreamEvent]] = {
    EventType.TEXT_CHUNK.value: _text_chunk,
    EventType.TOOL_CALL_START.value: _tool_call_start,
    EventType.TOOL_CALL_RESULT.value: _tool_call_result,
    EventType.MEMORY_RECALL.value: _memory_recall,
    EventType.PROVIDER_CALL_START.value: _provider_call_start,
    EventType.PROVIDER_CALL_END.value: _provider_call_end,
    EventType.DONE.value: _done,
    EventType.ERROR.value: _error,
}


def decode_stream_event(payload: Any, *, ts_ms: int) -> StreamEvent:
    """
    Decode one stream payload into its typed event.

    ts_ms is the local receive time; the wire format carries no timestamp.

    Raises:
        MalformedEvent: payload is not an object or a field is invalid
        UnknownEventType: discriminant is missing or not a stream event
    """
    if not isinstance(payload, Mapping):
        raise MalformedEvent(f"expected object, got {type(payload).__name__}")

    type_name = payload.get(STREAM_TYPE_KEY)
    decoder = _DECODERS.get(type_name) if isinstance(type_name, str) else None
    if decoder is None:
        raise UnknownEventType(f"unknown stream event type: {type_name!r}")

    return decoder(payload, ts_ms)
