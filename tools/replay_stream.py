"""
Replay a captured agent stream through the reducer.

Input: a JSONL file, one stream payload per line, e.g.

    {"type": "TextChunk", "content": "Hi"}
    {"type": "Done", "session_id": "s1"}
    {"type": "TextChunk", "content": "Again"}
    {"type": "Done", "session_id": "s1"}

A capture may hold several turns: any event arriving after a Done or
Error opens a new turn with the same prompt.

Usage (after `pip install -e .`):

    python tools/replay_stream.py capture.jsonl --prompt "hello"
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from context.snapshot import message_key
from orchestrator.enums.state import State
from orchestrator.events import EventType, UserMessageSubmitted
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import ChatState
from protocol.stream_codec import StreamProtocolError, decode_stream_event


def _open_turn(state: ChatState, prompt: str, ts_ms: int) -> ChatState:
    state, _ = reduce(
        state,
        UserMessageSubmitted(
            event_type=EventType.USER_MESSAGE_SUBMITTED,
            ts_ms=ts_ms,
            content=prompt,
        ),
    )
    return state


def replay(lines: list[str], prompt: str) -> ChatState:
    state = ChatState()

    for ts_ms, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            event = decode_stream_event(json.loads(line), ts_ms=ts_ms)
        except (ValueError, StreamProtocolError) as e:
            print(f"line {ts_ms}: skipped ({e})")
            continue
        if state.state is State.IDLE:
            state = _open_turn(state, prompt, ts_ms)
        state, _ = reduce(state, event)

    return state


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("capture", type=Path, help="JSONL file of stream payloads")
    parser.add_argument("--prompt", default="(replay)", help="user message that opens each turn")
    args = parser.parse_args()

    lines = args.capture.read_text(encoding="utf-8").splitlines()
    state = replay(lines, args.prompt)

    for m in state.messages:
        print(f"[{message_key(m.id)}] {m.role.value}: {m.content}")

    print("---")
    print("session_id:", state.session_id)
    print("streaming:", state.state.value)
    if state.streaming_content:
        print("uncommitted:", state.streaming_content)
    for tc in state.active_tool_calls:
        print(f"tool {tc.name}: {tc.status.value}")


if __name__ == "__main__":
    main()
