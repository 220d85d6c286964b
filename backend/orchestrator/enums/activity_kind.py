"""
Categories of ephemeral, display-only activities.
"""

from __future__ import annotations

from enum import Enum


class ActivityKind(str, Enum):
    MEMORY = "memory"
    PROVIDER = "provider"
    TOOL = "tool"
