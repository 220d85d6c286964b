"""
Transcript message roles.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Author of a transcript entry. Values match the persisted catalog roles."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
