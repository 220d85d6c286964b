"""
Session catalog records.

Typed views of the persisted-session shapes returned by the agent host:

    list_sessions -> [SessionSummary]
    get_session   -> SessionDetail (summary fields + ordered messages)

Rules:
- Records are immutable value objects.
- from_dict validates shape and raises CatalogRecordError on mismatch.
- No I/O, no logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from orchestrator.enums.role import Role


class CatalogRecordError(ValueError):
    """A catalog payload did not match the expected record shape."""


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise CatalogRecordError(f"{key}: expected str, got {type(value).__name__}")
    return value


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise CatalogRecordError(f"{key}: expected int, got {type(value).__name__}")
    return value


def _opt_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise CatalogRecordError(f"{key}: expected str or null")
    return value


def _opt_bool(data: Mapping[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is not None and not isinstance(value, bool):
        raise CatalogRecordError(f"{key}: expected bool or null")
    return value


@dataclass(frozen=True)
class SessionSummary:
    """One row of the session list."""
    id: str
    title: str
    provider: str
    model: str
    created_at: str
    updated_at: str
    message_count: int

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> SessionSummary:
        return SessionSummary(
            id=_str(data, "id"),
            title=_str(data, "title"),
            provider=_str(data, "provider"),
            model=_str(data, "model"),
            created_at=_str(data, "created_at"),
            updated_at=_str(data, "updated_at"),
            message_count=_int(data, "message_count"),
        )


@dataclass(frozen=True)
class SessionMessage:
    """One persisted transcript entry."""
    id: str
    session_id: str
    role: Role
    content: str
    timestamp: str
    sequence: int
    tool_name: str | None = None
    tool_args: str | None = None
    tool_success: bool | None = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> SessionMessage:
        raw_role = _str(data, "role")
        try:
            role = Role(raw_role)
        except ValueError as e:
            raise CatalogRecordError(f"role: unknown value {raw_role!r}") from e

        return SessionMessage(
            id=_str(data, "id"),
            session_id=_str(data, "session_id"),
            role=role,
            content=_str(data, "content"),
            timestamp=_str(data, "timestamp"),
            sequence=_int(data, "sequence"),
            tool_name=_opt_str(data, "tool_name"),
            tool_args=_opt_str(data, "tool_args"),
            tool_success=_opt_bool(data, "tool_success"),
        )


@dataclass(frozen=True)
class SessionDetail:
    """A persisted session with its full transcript, in stored order."""
    id: str
    title: str
    provider: str
    model: str
    created_at: str
    updated_at: str
    message_count: int
    messages: tuple[SessionMessage, ...] = ()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> SessionDetail:
        raw_messages = data.get("messages", [])
        if not isinstance(raw_messages, list):
            raise CatalogRecordError("messages: expected list")

        summary = SessionSummary.from_dict(data)
        return SessionDetail(
            id=summary.id,
            title=summary.title,
            provider=summary.provider,
            model=summary.model,
            created_at=summary.created_at,
            updated_at=summary.updated_at,
            message_count=summary.message_count,
            messages=tuple(SessionMessage.from_dict(m) for m in raw_messages),
        )
