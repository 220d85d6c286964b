# pylint: disable=missing-module-docstring,missing-function-docstring
from dataclasses import replace

from orchestrator.reducer import reduce
from orchestrator.state_dataclass import ChatState, ToolCallActivity
from orchestrator.enums.activity_kind import ActivityKind
from orchestrator.enums.role import Role
from orchestrator.enums.state import State
from orchestrator.enums.tool_status import ToolStatus

from orchestrator.events import (
    Done,
    EventType,
    MemoryRecall,
    ProviderCallEnd,
    ProviderCallStart,
    StreamError,
    TextChunk,
    ToolCallResult,
    ToolCallStart,
)

from orchestrator.commands import (
    Command,
    LogEvent,
    ReloadCatalog,
)


# ---------------------------------------------------------------------
# Event helpers (mirror codec construction)
# ---------------------------------------------------------------------

def text_chunk(content: str, ts_ms: int = 0) -> TextChunk:
    return TextChunk(event_type=EventType.TEXT_CHUNK, ts_ms=ts_ms, content=content)


def tool_start(name: str, arguments: str = "{}", call_id: str | None = None) -> ToolCallStart:
    return ToolCallStart(
        event_type=EventType.TOOL_CALL_START,
        ts_ms=0,
        name=name,
        arguments=arguments,
        call_id=call_id,
    )


def tool_result(
    name: str,
    success: bool = True,
    output: str = "ok",
    call_id: str | None = None,
) -> ToolCallResult:
    return ToolCallResult(
        event_type=EventType.TOOL_CALL_RESULT,
        ts_ms=0,
        name=name,
        success=success,
        output=output,
        call_id=call_id,
    )


def memory_recall(results_count: int, query: str = "q") -> MemoryRecall:
    return MemoryRecall(
        event_type=EventType.MEMORY_RECALL,
        ts_ms=0,
        query=query,
        results_count=results_count,
    )


def provider_start(provider: str = "anthropic", model: str = "claude") -> ProviderCallStart:
    return ProviderCallStart(
        event_type=EventType.PROVIDER_CALL_START,
        ts_ms=0,
        provider=provider,
        model=model,
    )


def provider_end(duration_ms: int = 10) -> ProviderCallEnd:
    return ProviderCallEnd(
        event_type=EventType.PROVIDER_CALL_END,
        ts_ms=0,
        duration_ms=duration_ms,
    )


def done(session_id: str = "s1") -> Done:
    return Done(event_type=EventType.DONE, ts_ms=0, session_id=session_id)


def stream_error(message: str) -> StreamError:
    return StreamError(event_type=EventType.ERROR, ts_ms=0, message=message)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def streaming(**kwargs) -> ChatState:
    return ChatState(state=State.STREAMING, **kwargs)


def decisions(commands: tuple[Command, ...]) -> list[str]:
    """Extract decision strings from LogEvent commands."""
    return [
        c.event["decision"]
        for c in commands
        if isinstance(c, LogEvent)
    ]


def fold(state: ChatState, *events) -> ChatState:
    for event in events:
        state, _ = reduce(state, event)
    return state


# ---------------------------------------------------------------------
# 1. Text accumulation
# ---------------------------------------------------------------------

def test_text_chunks_concatenate_in_order():
    state = fold(streaming(), text_chunk("Hel"), text_chunk("lo"), text_chunk(" world"))

    assert state.streaming_content == "Hello world"
    assert state.messages == ()


def test_text_chunk_logs_append_text():
    _, commands = reduce(streaming(), text_chunk("x"))

    assert decisions(commands) == ["append_text"]


def test_stream_events_while_idle_are_ignored():
    state = ChatState()

    new_state, commands = reduce(state, text_chunk("late"))

    assert new_state is state
    assert decisions(commands) == ["ignore"]
    assert commands[0].event["details"]["reason"] == "no_turn_in_flight"


# ---------------------------------------------------------------------
# 2. Tool calls
# ---------------------------------------------------------------------

def test_tool_call_start_adds_running_call_and_activity():
    state, commands = reduce(streaming(), tool_start("search", '{"q": "x"}'))

    assert state.active_tool_calls == (
        ToolCallActivity(name="search", arguments='{"q": "x"}'),
    )
    assert len(state.activities) == 1
    assert state.activities[0].label == "Running search..."
    assert state.activities[0].kind is ActivityKind.TOOL
    assert decisions(commands) == ["tool_call_started"]


def test_tool_result_resolves_most_recent_running_call_with_name():
    state = fold(
        streaming(),
        tool_start("search", "first"),
        tool_start("search", "second"),
        tool_result("search", success=False, output="boom"),
    )

    first, second = state.active_tool_calls
    assert first.status is ToolStatus.RUNNING
    assert second.status is ToolStatus.ERROR
    assert second.output == "boom"


def test_tool_result_skips_already_resolved_calls():
    state = fold(
        streaming(),
        tool_start("search", "first"),
        tool_start("search", "second"),
        tool_result("search", output="b"),
        tool_result("search", output="a"),
    )

    first, second = state.active_tool_calls
    assert (first.status, first.output) == (ToolStatus.SUCCESS, "a")
    assert (second.status, second.output) == (ToolStatus.SUCCESS, "b")


def test_tool_result_correlates_by_call_id_when_present():
    state = fold(
        streaming(),
        tool_start("search", "first", call_id="c1"),
        tool_start("search", "second", call_id="c2"),
        tool_result("search", output="for-first", call_id="c1"),
    )

    first, second = state.active_tool_calls
    assert first.status is ToolStatus.SUCCESS
    assert first.output == "for-first"
    assert second.status is ToolStatus.RUNNING


def test_unmatched_tool_result_leaves_state_unchanged():
    state = fold(streaming(), tool_start("search"))

    new_state, commands = reduce(state, tool_result("read_file"))

    assert new_state is state
    assert decisions(commands) == ["ignore"]
    assert commands[0].event["details"]["reason"] == "tool_result_unmatched"


# ---------------------------------------------------------------------
# 3. Activities
# ---------------------------------------------------------------------

def test_memory_recall_adds_labelled_activity():
    state, _ = reduce(streaming(), memory_recall(3))

    assert state.activities[0].label == "Searching memory... (3 results)"
    assert state.activities[0].kind is ActivityKind.MEMORY


def test_provider_call_start_adds_labelled_activity():
    state, _ = reduce(streaming(), provider_start("anthropic", "claude-sonnet"))

    assert state.activities[0].label == "Calling anthropic (claude-sonnet)..."
    assert state.activities[0].kind is ActivityKind.PROVIDER


def test_provider_call_end_changes_nothing():
    state = fold(streaming(), provider_start())

    new_state, commands = reduce(state, provider_end(812))

    assert new_state is state
    assert decisions(commands) == ["provider_call_ended"]


def test_activity_ids_are_unique_within_turn():
    state = fold(
        streaming(),
        provider_start(),
        memory_recall(1),
        tool_start("search"),
        provider_start(),
    )

    ids = [a.id for a in state.activities]
    assert len(ids) == len(set(ids)) == 4


# ---------------------------------------------------------------------
# 4. Terminal events
# ---------------------------------------------------------------------

def test_done_commits_buffer_as_single_assistant_message():
    state = fold(streaming(), text_chunk("Hi"), text_chunk(" there"))

    new_state, commands = reduce(state, done("s1"))

    assert [(m.role, m.content) for m in new_state.messages] == [
        (Role.ASSISTANT, "Hi there"),
    ]
    assert new_state.streaming_content == ""
    assert new_state.state is State.IDLE
    assert new_state.session_id == "s1"
    assert any(isinstance(c, ReloadCatalog) for c in commands)
    assert "turn_done" in decisions(commands)


def test_done_with_empty_buffer_appends_nothing():
    state = streaming(session_id="old")

    new_state, _ = reduce(state, done("new"))

    assert new_state.messages == ()
    assert new_state.session_id == "new"
    assert new_state.state is State.IDLE


def test_done_abandons_running_tool_calls():
    state = fold(streaming(), tool_start("read_file"), memory_recall(2))

    new_state, commands = reduce(state, done())

    assert new_state.active_tool_calls == ()
    assert new_state.activities == ()
    turn_done = [c for c in commands if isinstance(c, LogEvent)
                 and c.event["decision"] == "turn_done"][0]
    assert turn_done.event["details"]["abandoned_tool_calls"] == 1


def test_stream_error_appends_message_and_keeps_session_id():
    state = fold(
        streaming(session_id="s1"),
        text_chunk("partial"),
        tool_start("search"),
        provider_start(),
    )

    new_state, commands = reduce(state, stream_error("rate limited"))

    assert new_state.messages[-1].role is Role.ASSISTANT
    assert new_state.messages[-1].content == "Error: rate limited"
    assert new_state.streaming_content == ""
    assert new_state.active_tool_calls == ()
    assert new_state.activities == ()
    assert new_state.state is State.IDLE
    assert new_state.session_id == "s1"
    assert "turn_error" in decisions(commands)


def test_terminal_event_logs_come_after_side_effect_commands():
    state = fold(streaming(), text_chunk("x"))

    _, commands = reduce(state, done())

    assert isinstance(commands[0], ReloadCatalog)
    assert all(isinstance(c, LogEvent) for c in commands[1:])
    assert commands[-1].event["decision"] == "state_changed"


def test_reducer_does_not_mutate_input_state():
    state = fold(streaming(), text_chunk("a"), tool_start("search"))
    before = replace(state)

    reduce(state, done())

    assert state == before
