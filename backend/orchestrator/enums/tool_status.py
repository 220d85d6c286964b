"""
Tool call lifecycle enumeration.

RUNNING is the only non-terminal status; SUCCESS and ERROR are
reached at most once from RUNNING.
"""

from __future__ import annotations

from enum import Enum


class ToolStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
