# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.reducer import reduce
from orchestrator.state_dataclass import ChatState
from orchestrator.events import EventType, TextChunk, UserMessageSubmitted
from orchestrator.commands import LogEvent
from orchestrator.enums.state import State


def test_reducer_emits_logevent_with_required_fields():
    state = ChatState(state=State.IDLE)

    event = UserMessageSubmitted(
        event_type=EventType.USER_MESSAGE_SUBMITTED,
        ts_ms=123,
        content="hello",
    )

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event

    assert payload["ts_ms"] == 123
    assert payload["event_type"] == "USER_MESSAGE_SUBMITTED"
    assert "state" in payload
    assert "decision" in payload
    assert "session_id" in payload
    assert "generation" in payload
    assert isinstance(payload["details"], dict)


def test_ignored_event_still_logs():
    event = TextChunk(event_type=EventType.TEXT_CHUNK, ts_ms=1, content="late")

    _, commands = reduce(ChatState(), event)

    assert len(commands) == 1
    assert isinstance(commands[0], LogEvent)
    assert commands[0].event["decision"] == "ignore"
    assert commands[0].event["state"] == "IDLE"
