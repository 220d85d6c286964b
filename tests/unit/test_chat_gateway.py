# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json
from typing import Any

import pytest

import session.gateway as gateway_mod
from channel.event_channel import EventChannel
from session.gateway import ChatGateway

from chat_fakes import (
    CHANNEL,
    FakeBackend,
    FakeCatalog,
    detail,
    make_config,
    settle,
    summary,
)


def build(catalog: FakeCatalog | None = None) -> tuple[ChatGateway, FakeBackend, EventChannel]:
    channel = EventChannel()
    backend = FakeBackend(channel)
    gw = ChatGateway(
        config=make_config(),
        backend=backend,
        catalog=catalog if catalog is not None else FakeCatalog(),
        channel=channel,
    )
    return gw, backend, channel


async def drain(gw: ChatGateway) -> list[dict[str, Any]]:
    await settle()
    out: list[dict[str, Any]] = []
    while True:
        try:
            out.append(await asyncio.wait_for(gw.next_outbound(), timeout=0.05))
        except asyncio.TimeoutError:
            return out


def of_type(msgs: list[dict[str, Any]], msg_type: str) -> list[dict[str, Any]]:
    return [m for m in msgs if m["type"] == msg_type]


@pytest.mark.asyncio
async def test_connect_returns_init_and_snapshot_then_pushes_session_list():
    gw, _, channel = build(FakeCatalog(sessions=[summary("s1", "Weather")]))

    result = await gw.on_ws_connect()

    init, snapshot = result.outbound_json
    assert init["type"] == "SESSION_INIT"
    assert init["connection_id"] == gw.connection_id
    assert snapshot["type"] == "STATE_SNAPSHOT"
    assert snapshot["state"]["messages"] == []
    assert channel.listener_count(CHANNEL) == 1

    pushed = await drain(gw)
    lists = of_type(pushed, "SESSION_LIST")
    assert lists[0]["sessions"][0]["id"] == "s1"
    assert lists[0]["sessions"][0]["title"] == "Weather"

    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_send_message_streams_snapshots():
    gw, backend, _ = build()
    backend.script(
        [
            {"type": "TextChunk", "content": "Hi"},
            {"type": "TextChunk", "content": " there"},
            {"type": "Done", "session_id": "s1"},
        ],
        "s1",
    )
    await gw.on_ws_connect()

    result = await gw.on_json_message(json.dumps({"type": "SEND_MESSAGE", "content": "hello"}))
    assert result.outbound_json == ()

    snapshots = [m["state"] for m in of_type(await drain(gw), "STATE_SNAPSHOT")]

    assert snapshots[0]["is_streaming"] is True
    assert any(s["streaming_content"] == "Hi" for s in snapshots)
    final = snapshots[-1]
    assert final["is_streaming"] is False
    assert final["session_id"] == "s1"
    assert [(m["id"], m["content"]) for m in final["messages"]] == [
        ("msg-0", "hello"),
        ("msg-1", "Hi there"),
    ]

    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_new_session_pushes_empty_snapshot():
    gw, backend, _ = build()
    backend.script([{"type": "Done", "session_id": "s1"}], "s1")
    await gw.on_ws_connect()
    await gw.on_json_message(json.dumps({"type": "SEND_MESSAGE", "content": "hello"}))
    await drain(gw)

    await gw.on_json_message(json.dumps({"type": "NEW_SESSION"}))

    last = of_type(await drain(gw), "STATE_SNAPSHOT")[-1]["state"]
    assert last["messages"] == []
    assert last["session_id"] is None

    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_continue_session_hydrates_or_reports_failure():
    gw, _, _ = build(FakeCatalog(details={"s9": detail("s9", "q", "a")}))
    await gw.on_ws_connect()

    await gw.on_json_message(json.dumps({"type": "CONTINUE_SESSION", "session_id": "s9"}))
    await gw.on_json_message(json.dumps({"type": "CONTINUE_SESSION", "session_id": "nope"}))
    pushed = await drain(gw)

    last = of_type(pushed, "STATE_SNAPSHOT")[-1]["state"]
    assert last["session_id"] == "s9"
    assert [m["content"] for m in last["messages"]] == ["q", "a"]
    assert of_type(pushed, "SESSION_LOAD_FAILED") == [
        {"type": "SESSION_LOAD_FAILED", "session_id": "nope"},
    ]

    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_delete_session_pushes_updated_list():
    catalog = FakeCatalog(sessions=[summary("s1"), summary("s2")])
    gw, _, _ = build(catalog)
    await gw.on_ws_connect()
    await drain(gw)

    await gw.on_json_message(json.dumps({"type": "DELETE_SESSION", "session_id": "s1"}))
    lists = of_type(await drain(gw), "SESSION_LIST")

    assert catalog.deleted == ["s1"]
    assert [s["id"] for s in lists[-1]["sessions"]] == ["s2"]

    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_bad_messages_are_logged(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(gateway_mod, "log_event", emitted.append)

    gw, backend, _ = build()
    await gw.on_ws_connect()

    await gw.on_json_message("{not json")
    await gw.on_json_message(json.dumps({"type": "MIC_START"}))
    await gw.on_json_message(json.dumps({"type": "SEND_MESSAGE", "content": 5}))
    await gw.on_json_message(json.dumps([1, 2]))

    types = [e["event_type"] for e in emitted]
    assert "JSON_DECODE_ERROR" in types
    assert "UNKNOWN_MESSAGE_TYPE" in types
    assert types.count("INVALID_MESSAGE") == 2
    assert backend.calls == []

    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_disconnect_unsubscribes_and_is_safe_without_session(
    monkeypatch: pytest.MonkeyPatch,
):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(gateway_mod, "log_event", emitted.append)

    gw, _, channel = build()
    await gw.on_ws_connect()

    await gw.on_ws_disconnect(reason="client_disconnect")
    await gw.on_ws_disconnect(reason="again")

    assert channel.listener_count(CHANNEL) == 0
    types = [e["event_type"] for e in emitted]
    assert "WS_DISCONNECTED" in types
    assert "WS_DISCONNECT_WITHOUT_SESSION" in types
