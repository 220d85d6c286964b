# pylint: disable=missing-module-docstring,missing-function-docstring
from catalog.records import SessionDetail, SessionMessage
from context.hydration import hydrate
from orchestrator.enums.role import Role
from orchestrator.enums.state import State


def stored(sequence: int, role: Role, content: str, **tool) -> SessionMessage:
    return SessionMessage(
        id=f"m{sequence}",
        session_id="s1",
        role=role,
        content=content,
        timestamp="2026-01-01T00:00:00Z",
        sequence=sequence,
        **tool,
    )


def detail(*messages: SessionMessage) -> SessionDetail:
    return SessionDetail(
        id="s1",
        title="Weather",
        provider="anthropic",
        model="claude",
        created_at="2026-01-01T00:00:00Z",
        updated_at="2026-01-01T00:05:00Z",
        message_count=len(messages),
        messages=messages,
    )


def test_hydrate_maps_messages_in_stored_order():
    state = hydrate(
        detail(
            stored(0, Role.USER, "weather?"),
            stored(1, Role.TOOL_CALL, "", tool_name="weather", tool_args='{"city": "Oslo"}'),
            stored(2, Role.TOOL_RESULT, "rain", tool_name="weather", tool_success=True),
            stored(3, Role.ASSISTANT, "It rains."),
        ),
        generation=4,
    )

    assert [m.role for m in state.messages] == [
        Role.USER, Role.TOOL_CALL, Role.TOOL_RESULT, Role.ASSISTANT,
    ]
    assert state.messages[1].tool_args == '{"city": "Oslo"}'
    assert state.messages[2].tool_success is True
    assert state.session_id == "s1"
    assert state.generation == 4


def test_hydrate_assigns_dense_ids_and_resumes_counter():
    state = hydrate(
        detail(stored(0, Role.USER, "a"), stored(1, Role.ASSISTANT, "b")),
        generation=1,
    )

    assert [m.id for m in state.messages] == [0, 1]
    assert state.next_message_id == 2


def test_hydrate_clears_turn_state():
    state = hydrate(detail(), generation=1)

    assert state.state is State.IDLE
    assert state.streaming_content == ""
    assert state.active_tool_calls == ()
    assert state.activities == ()
    assert state.next_message_id == 0
