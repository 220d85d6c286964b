"""
Authoritative turn state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    Turn lifecycle of a single chat session.

    IDLE:
        No turn in flight. A user message may be sent.

    STREAMING:
        A user message was sent and the terminal event (Done / Error)
        for that turn has not been applied yet.
    """

    IDLE = "IDLE"
    STREAMING = "STREAMING"
