"""
Session hydration.

Responsibilities:
- Convert a persisted SessionDetail into a fresh ChatState
  for resuming an old conversation.

Rules:
- Messages are mapped one-to-one, in stored order
  (role, content and tool fields carried through).
- Turn-scoped state is empty and the session is IDLE.
- Local message ids are 0..n-1 and the id counter resumes at n,
  so ids generated afterwards never collide with hydrated ones.

Non-responsibilities:
- No fetching, no logging, no subscription handling
"""

from __future__ import annotations

from catalog.records import SessionDetail
from orchestrator.state_dataclass import ChatMessage, ChatState


def hydrate(detail: SessionDetail, *, generation: int) -> ChatState:
    """Build the session state for a resumed conversation."""
    messages = tuple(
        ChatMessage(
            id=index,
            role=stored.role,
            content=stored.content,
            tool_name=stored.tool_name,
            tool_args=stored.tool_args,
            tool_success=stored.tool_success,
        )
        for index, stored in enumerate(detail.messages)
    )

    return ChatState(
        messages=messages,
        next_message_id=len(messages),
        session_id=detail.id,
        generation=generation,
    )
