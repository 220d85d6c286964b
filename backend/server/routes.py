"""
Route registration for the chat stream API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
- Admit one live chat connection per process
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect, status

from adapters.agent_host.client import AgentHostClient
from adapters.agent_host.errors import AgentHostError, InvokeFailed
from catalog.records import CatalogRecordError
from observability.logger import log_event
from session.gateway import ChatGateway, GatewayResult


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        host: AgentHostClient = app.state.agent_host
        return {"status": "ok", "agent_host_connected": host.connected}

    @app.get("/sessions")
    async def list_sessions( # pyright: ignore[reportUnusedFunction]
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        host: AgentHostClient = app.state.agent_host
        page_limit = limit if limit is not None else app.state.config.catalog_page_limit
        try:
            sessions = await host.list_sessions(page_limit, offset)
        except (AgentHostError, CatalogRecordError) as exc:
            raise _upstream_error("list_sessions", exc) from exc
        return [asdict(s) for s in sessions]

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        host: AgentHostClient = app.state.agent_host
        try:
            detail = await host.get_session(session_id)
        except InvokeFailed as exc:
            # The host reports unknown ids as a failed invoke
            raise HTTPException(status_code=404, detail=exc.error) from exc
        except (AgentHostError, CatalogRecordError) as exc:
            raise _upstream_error("get_session", exc) from exc
        return asdict(detail)

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        # Agent host client serves as both backend and catalog
        host: AgentHostClient = app.state.agent_host

        # The agent stream carries no connection id, so a second live
        # session would apply the first one's events
        active: ChatGateway | None = app.state.active_gateway
        if active is not None:
            log_event({
                "event_type": "WS_REJECTED_SESSION_ACTIVE",
                "active_connection_id": active.connection_id,
            })
            await ws.close(
                code=status.WS_1008_POLICY_VIOLATION,
                reason="another chat session is active",
            )
            return

        gateway = ChatGateway(
            config=app.state.config,
            backend=host,
            catalog=host,
            channel=app.state.event_channel,
        )
        app.state.active_gateway = gateway

        pusher: asyncio.Task[None] | None = None
        try:
            result = await gateway.on_ws_connect()
            await _flush_gateway_result(ws, result)

            pusher = asyncio.create_task(_push_loop(ws, gateway))

            while True:
                text = await ws.receive_text()
                result = await gateway.on_json_message(text)
                await _flush_gateway_result(ws, result)

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "connection_id": gateway.connection_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")

        finally:
            if pusher is not None:
                pusher.cancel()
                await asyncio.gather(pusher, return_exceptions=True)
            if app.state.active_gateway is gateway:
                app.state.active_gateway = None


def _upstream_error(command: str, exc: Exception) -> HTTPException:
    log_event({
        "event_type": "HTTP_UPSTREAM_ERROR",
        "command": command,
        "exception": type(exc).__name__,
        "message": str(exc),
    })
    return HTTPException(status_code=502, detail=str(exc))


async def _push_loop(ws: WebSocket, gateway: ChatGateway) -> None:
    """Forward gateway pushes (snapshots, session lists) to the client."""
    while True:
        msg = await gateway.next_outbound()
        await ws.send_text(json.dumps(msg))


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
) -> None:
    for msg in result.outbound_json:
        await ws.send_text(json.dumps(msg))
