"""
Agent host WebSocket client.

Role in the system:
- Holds one WebSocket connection to the agent host process.
- Re-emits pushed stream events on the local EventChannel.
- Implements request/reply "invoke" commands over the same socket:
    - send_message   (outbound turn; AgentBackendProtocol)
    - list_sessions / get_session / delete_session (SessionCatalogProtocol)

Frame format (JSON text frames):

    host -> client  {"kind": "event", "channel": "agent-stream", "payload": {...}}
    client -> host  {"kind": "invoke", "request_id": "...", "command": "...", "args": {...}}
    host -> client  {"kind": "invoke_result", "request_id": "...", "ok": true, "result": ...}
    host -> client  {"kind": "invoke_result", "request_id": "...", "ok": false, "error": "..."}

Design constraints:
- The client never decodes stream payloads; the runtime does.
- The connection is opened lazily and re-opened on the next invoke after
  it dropped. Pending invokes fail with AgentHostUnavailable on drop.
- No retries: a failed send is surfaced once to the user.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable
from uuid import uuid4

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from adapters.agent_host.errors import (
    AgentHostUnavailable,
    InvokeFailed,
    InvokeTimeout,
)
from catalog.records import SessionDetail, SessionSummary
from channel.event_channel import EventChannel
from constants import (
    AGENT_HOST_MAX_FRAME_BYTES,
    AGENT_INVOKE_TIMEOUT_S,
    DEFAULT_AGENT_MODEL,
    DEFAULT_AGENT_PROVIDER,
    LOG_PREVIEW_CHARS,
)
from observability.logger import log_event


ConnectFn = Callable[[str], Awaitable[Any]]


def _default_connect(url: str) -> Awaitable[Any]:
    return ws_connect(url, max_size=AGENT_HOST_MAX_FRAME_BYTES)


class AgentHostClient:
    """
    Client side of the agent host connection.

    One instance per process; shared by every chat gateway.
    """

    def __init__(
        self,
        *,
        url: str,
        channel: EventChannel,
        provider: str = DEFAULT_AGENT_PROVIDER,
        model: str = DEFAULT_AGENT_MODEL,
        invoke_timeout_s: float = AGENT_INVOKE_TIMEOUT_S,
        connect: ConnectFn = _default_connect,
    ) -> None:
        self._url = url
        self._channel = channel
        self._provider = provider
        self._model = model
        self._invoke_timeout_s = invoke_timeout_s
        self._connect = connect

        self._ws: Any = None
        self._recv_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

        # request_id -> (command, future)
        self._pending: dict[str, tuple[str, asyncio.Future[Any]]] = {}

    @property
    def connected(self) -> bool:
        return self._ws is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Open the connection eagerly. Returns False if the host is unreachable."""
        async with self._lock:
            await self._ensure_connected_locked()
            return self._ws is not None

    async def close(self) -> None:
        async with self._lock:
            await self._drop_connection_locked()
        self._fail_pending(AgentHostUnavailable("client closed"))

    # ------------------------------------------------------------------
    # AgentBackendProtocol
    # ------------------------------------------------------------------

    async def send_message(self, session_id: str | None, message: str) -> str:
        """
        Start one agent turn. Returns the session id the host used
        (a new one when session_id is None).
        """
        result = await self._invoke(
            "send_message",
            {
                "session_id": session_id,
                "message": message,
                "provider": self._provider,
                "model": self._model,
            },
        )
        if not isinstance(result, str) or not result:
            raise InvokeFailed("send_message", f"invalid session id: {result!r}")
        return result

    # ------------------------------------------------------------------
    # SessionCatalogProtocol
    # ------------------------------------------------------------------

    async def list_sessions(self, limit: int, offset: int) -> list[SessionSummary]:
        result = await self._invoke("list_sessions", {"limit": limit, "offset": offset})
        if not isinstance(result, list):
            raise InvokeFailed("list_sessions", "expected a list")
        return [SessionSummary.from_dict(row) for row in result]

    async def get_session(self, session_id: str) -> SessionDetail:
        result = await self._invoke("get_session", {"session_id": session_id})
        if not isinstance(result, dict):
            raise InvokeFailed("get_session", "expected an object")
        return SessionDetail.from_dict(result)

    async def delete_session(self, session_id: str) -> None:
        await self._invoke("delete_session", {"session_id": session_id})

    # ------------------------------------------------------------------
    # Invoke
    # ------------------------------------------------------------------

    async def _invoke(self, command: str, args: dict[str, Any]) -> Any:
        async with self._lock:
            await self._ensure_connected_locked()
            ws = self._ws

        if ws is None:
            raise AgentHostUnavailable(f"{command}: agent host unreachable at {self._url}")

        request_id = uuid4().hex
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = (command, future)

        try:
            await ws.send(json.dumps({
                "kind": "invoke",
                "request_id": request_id,
                "command": command,
                "args": args,
            }))
            return await asyncio.wait_for(future, timeout=self._invoke_timeout_s)
        except asyncio.TimeoutError as e:
            raise InvokeTimeout(command, self._invoke_timeout_s) from e
        except ConnectionClosed as e:
            async with self._lock:
                if self._ws is ws:
                    await self._drop_connection_locked()
            raise AgentHostUnavailable(f"{command}: connection closed") from e
        finally:
            self._pending.pop(request_id, None)

    def _fail_pending(self, exc: Exception) -> None:
        for command, future in list(self._pending.values()):
            if not future.done():
                future.set_exception(exc)
                log_event({
                    "event_type": "AGENT_INVOKE_ABORTED",
                    "command": command,
                    "reason": str(exc),
                })

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def _ensure_connected_locked(self) -> None:
        if self._ws is not None:
            return

        try:
            self._ws = await self._connect(self._url)
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._ws = None
            log_event({
                "event_type": "AGENT_HOST_CONNECT_FAILED",
                "url": self._url,
                "exception": type(e).__name__,
                "message": str(e),
            })
            return

        log_event({"event_type": "agent_host_connected", "url": self._url})
        self._recv_task = asyncio.create_task(self._recv_loop(self._ws))

    async def _drop_connection_locked(self) -> None:
        ws = self._ws
        self._ws = None

        task = self._recv_task
        self._recv_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        if ws is not None:
            try:
                await ws.close()
            except Exception:  # pylint: disable=broad-exception-caught
                pass

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    async def _recv_loop(self, ws: Any) -> None:
        """Route host frames until the connection ends."""
        try:
            async for raw in ws:
                try:
                    data = json.loads(raw)
                except (TypeError, ValueError) as e:
                    log_event({
                        "event_type": "AGENT_FRAME_DECODE_ERROR",
                        "error": str(e),
                        "payload_preview": str(raw)[:LOG_PREVIEW_CHARS],
                    })
                    continue

                self._handle_frame(data)
        except asyncio.CancelledError:
            return
        except ConnectionClosed as e:
            log_event({
                "event_type": "AGENT_HOST_DISCONNECTED",
                "url": self._url,
                "message": str(e),
            })
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "AGENT_HOST_RECV_FAILED",
                "url": self._url,
                "exception": type(e).__name__,
                "message": str(e),
            })

        async with self._lock:
            if self._ws is ws:
                self._ws = None
                self._recv_task = None
        self._fail_pending(AgentHostUnavailable("connection lost"))

    def _handle_frame(self, data: Any) -> None:
        if not isinstance(data, dict):
            log_event({
                "event_type": "AGENT_FRAME_INVALID",
                "payload_preview": repr(data)[:LOG_PREVIEW_CHARS],
            })
            return

        kind = data.get("kind")

        if kind == "event":
            name = data.get("channel")
            if not isinstance(name, str):
                log_event({"event_type": "AGENT_EVENT_WITHOUT_CHANNEL"})
                return
            self._channel.emit(name, data.get("payload"))
            return

        if kind == "invoke_result":
            entry = self._pending.get(str(data.get("request_id")))
            if entry is None:
                # Timed out or aborted already
                log_event({
                    "event_type": "AGENT_INVOKE_RESULT_UNMATCHED",
                    "request_id": data.get("request_id"),
                })
                return

            command, future = entry
            if future.done():
                return
            if data.get("ok") is True:
                future.set_result(data.get("result"))
            else:
                future.set_exception(
                    InvokeFailed(command, str(data.get("error", "unknown error")))
                )
            return

        log_event({"event_type": "AGENT_FRAME_UNKNOWN_KIND", "kind": kind})
