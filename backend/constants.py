"""
CONSTANTS
---------
Single source of truth for behavioral constants of the chat controller.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic strings or numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Event channel
# =============================================================================

# Named process-scoped feed carrying agent stream events
AGENT_STREAM_CHANNEL: Final[str] = "agent-stream"

# Discriminant key of the internally tagged stream payloads
STREAM_TYPE_KEY: Final[str] = "type"

# Per-subscription delivery queue bound (0 = unbounded, no backpressure)
CHANNEL_QUEUE_MAX_EVENTS: Final[int] = 0

# =============================================================================
# Transcript formatting
# =============================================================================

MESSAGE_ID_PREFIX: Final[str] = "msg-"

# Synthetic assistant message for a backend-reported failure
STREAM_ERROR_PREFIX: Final[str] = "Error: "

# Synthetic assistant message for a failed outbound send
SEND_FAILURE_PREFIX: Final[str] = "Failed to send message: "

# =============================================================================
# Activity labels
# =============================================================================

TOOL_ACTIVITY_LABEL: Final[str] = "Running {name}..."
MEMORY_ACTIVITY_LABEL: Final[str] = "Searching memory... ({results_count} results)"
PROVIDER_ACTIVITY_LABEL: Final[str] = "Calling {provider} ({model})..."

# =============================================================================
# Agent host
# =============================================================================

DEFAULT_AGENT_PROVIDER: Final[str] = "anthropic"
DEFAULT_AGENT_MODEL: Final[str] = "claude-sonnet-4-20250514"

AGENT_INVOKE_TIMEOUT_S: Final[float] = 30.0
AGENT_HOST_MAX_FRAME_BYTES: Final[int] = 2**22

# =============================================================================
# Session catalog
# =============================================================================

CATALOG_PAGE_LIMIT: Final[int] = 50
CATALOG_PAGE_OFFSET: Final[int] = 0

# =============================================================================
# Logging
# =============================================================================

LOG_PREVIEW_CHARS: Final[int] = 100
