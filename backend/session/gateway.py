"""
Chat session gateway.

Responsibilities:
- One gateway per UI WebSocket connection
- Build the connection's Runtime, catalog mirror and execution context
- Route inbound UI JSON messages to runtime operations
- Push state snapshots and session lists to the UI through an outbox

Inbound messages (UI -> server):
    {"type": "SEND_MESSAGE", "content": "..."}
    {"type": "NEW_SESSION"}
    {"type": "CONTINUE_SESSION", "session_id": "..."}
    {"type": "DELETE_SESSION", "session_id": "..."}
    {"type": "LIST_SESSIONS"}

Outbound messages (server -> UI):
    {"type": "SESSION_INIT", "connection_id": "..."}
    {"type": "STATE_SNAPSHOT", "state": {...}}
    {"type": "SESSION_LIST", "sessions": [...]}
    {"type": "SESSION_LOAD_FAILED", "session_id": "..."}
    {"type": "SESSION_DELETE_FAILED", "session_id": "..."}

NOT responsible for:
- Any state machine logic (reducer)
- Command execution (runtime)
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Coroutine
from uuid import uuid4

from catalog.mirror import CatalogMirror
from catalog.records import SessionSummary
from constants import LOG_PREVIEW_CHARS
from context.snapshot import serialize_state
from observability.logger import log_event, now_ms
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import (
    AgentBackendProtocol,
    EventChannelProtocol,
    RuntimeExecutionContext,
    SessionCatalogProtocol,
)
from orchestrator.state_dataclass import ChatState

if TYPE_CHECKING:
    from config import AppConfig


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _new_connection_id() -> str:
    return f"conn_{uuid4().hex[:12]}"


def _summary(s: SessionSummary) -> dict[str, Any]:
    return asdict(s)


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to the client right away
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# ChatGateway
# ------------------------------------------------------------------

class ChatGateway:
    """
    One gateway == one UI connection == one chat session at a time.

    Snapshots produced by background work (stream events, catalog
    reloads) are queued and read by the route through next_outbound().
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        backend: AgentBackendProtocol,
        catalog: SessionCatalogProtocol,
        channel: EventChannelProtocol,
    ) -> None:
        self._config = config
        self._backend = backend
        self._catalog = catalog
        self._channel = channel

        self.connection_id: str | None = None
        self.runtime: Runtime | None = None
        self.mirror: CatalogMirror | None = None

        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self) -> GatewayResult:
        """Called when a WebSocket connection is established."""
        connection_id = _new_connection_id()
        self.connection_id = connection_id

        self.mirror = CatalogMirror(
            self._catalog,
            connection_id=connection_id,
            page_limit=self._config.catalog_page_limit,
            on_changed=self._on_catalog_changed,
        )

        runtime = Runtime(
            context=RuntimeExecutionContext(
                connection_id=connection_id,
                backend=self._backend,
                channel=self._channel,
                channel_name=self._config.agent_stream_channel,
                catalog=self.mirror,
            ),
        )
        runtime.add_listener(self._on_state_changed)
        runtime.start()
        self.runtime = runtime

        log_event({
            "ts_ms": now_ms(),
            "event_type": "WS_CONNECTED",
            "connection_id": connection_id,
        })

        self._spawn(runtime.reload_catalog(reason="connect"), "reload_catalog")

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "connection_id": connection_id,
            "config": {
                "provider": self._config.agent_provider,
                "model": self._config.agent_model,
            },
        }
        return GatewayResult(outbound_json=(init_msg, self._snapshot(runtime.state)))

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """Called when the WebSocket disconnects."""
        if self.runtime is None:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return GatewayResult()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        await self.runtime.shutdown()

        log_event({
            "ts_ms": now_ms(),
            "event_type": "WS_DISCONNECTED",
            "connection_id": self.connection_id,
            "session_id": self.runtime.state.session_id,
            "reason": reason,
        })
        self.runtime = None
        return GatewayResult()

    async def next_outbound(self) -> dict[str, Any]:
        """Wait for the next pushed message for the client."""
        return await self._outbox.get()

    # ------------------------------------------------------------------
    # Inbound routing
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route inbound JSON to runtime operations."""
        runtime = self.runtime
        if runtime is None:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:LOG_PREVIEW_CHARS],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "connection_id": self.connection_id,
                "error": str(e),
                "payload_preview": payload[:LOG_PREVIEW_CHARS],
            })
            return GatewayResult()

        if not isinstance(data, dict):
            log_event({
                "ts_ms": now_ms(),
                "event_type": "INVALID_MESSAGE",
                "connection_id": self.connection_id,
                "payload_preview": payload[:LOG_PREVIEW_CHARS],
            })
            return GatewayResult()

        msg_type = data.get("type")

        if msg_type == "SEND_MESSAGE":
            content = data.get("content")
            if not isinstance(content, str):
                return self._invalid(msg_type, "content")
            # Send runs in the background so the socket keeps reading
            self._spawn(runtime.send_message(content), "send_message")

        elif msg_type == "NEW_SESSION":
            await runtime.new_session()

        elif msg_type == "CONTINUE_SESSION":
            session_id = data.get("session_id")
            if not isinstance(session_id, str):
                return self._invalid(msg_type, "session_id")
            self._spawn(self._continue_session(session_id), "continue_session")

        elif msg_type == "DELETE_SESSION":
            session_id = data.get("session_id")
            if not isinstance(session_id, str):
                return self._invalid(msg_type, "session_id")
            self._spawn(self._delete_session(session_id), "delete_session")

        elif msg_type == "LIST_SESSIONS":
            self._spawn(runtime.reload_catalog(reason="request"), "reload_catalog")

        else:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                "connection_id": self.connection_id,
            })

        return GatewayResult()

    # ------------------------------------------------------------------
    # Background operations
    # ------------------------------------------------------------------

    async def _continue_session(self, session_id: str) -> None:
        assert self.runtime is not None
        if not await self.runtime.continue_session_by_id(session_id):
            self._push({"type": "SESSION_LOAD_FAILED", "session_id": session_id})

    async def _delete_session(self, session_id: str) -> None:
        assert self.runtime is not None
        if not await self.runtime.delete_session(session_id):
            self._push({"type": "SESSION_DELETE_FAILED", "session_id": session_id})

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "GATEWAY_TASK_FAILED",
                "connection_id": self.connection_id,
                "task": task.get_name(),
                "exception": type(exc).__name__,
                "message": str(exc),
            })

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _on_state_changed(self, state: ChatState) -> None:
        self._push(self._snapshot(state))

    async def _on_catalog_changed(self, sessions: tuple[SessionSummary, ...]) -> None:
        self._push({
            "type": "SESSION_LIST",
            "sessions": [_summary(s) for s in sessions],
        })

    def _push(self, msg: dict[str, Any]) -> None:
        self._outbox.put_nowait(msg)

    def _snapshot(self, state: ChatState) -> dict[str, Any]:
        return {"type": "STATE_SNAPSHOT", "state": serialize_state(state)}

    def _invalid(self, msg_type: str, field: str) -> GatewayResult:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "INVALID_MESSAGE",
            "connection_id": self.connection_id,
            "msg_type": msg_type,
            "field": field,
        })
        return GatewayResult()
