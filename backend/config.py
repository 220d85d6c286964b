"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No behavioral constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    AGENT_INVOKE_TIMEOUT_S,
    AGENT_STREAM_CHANNEL,
    CATALOG_PAGE_LIMIT,
    DEFAULT_AGENT_MODEL,
    DEFAULT_AGENT_PROVIDER,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the agent host client and the gateways.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Agent host
    # ------------------------------------------------------------------

    agent_host_url: str
    agent_stream_channel: str
    agent_provider: str
    agent_model: str
    agent_invoke_timeout_s: float

    # ------------------------------------------------------------------
    # Session catalog
    # ------------------------------------------------------------------

    catalog_page_limit: int

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable cannot be parsed.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            agent_host_url=os.environ.get("AGENT_HOST_URL", "ws://127.0.0.1:8765/agent"),
            agent_stream_channel=os.environ.get("AGENT_STREAM_CHANNEL", AGENT_STREAM_CHANNEL),
            agent_provider=os.environ.get("AGENT_PROVIDER", DEFAULT_AGENT_PROVIDER),
            agent_model=os.environ.get("AGENT_MODEL", DEFAULT_AGENT_MODEL),
            agent_invoke_timeout_s=float(
                os.environ.get("AGENT_INVOKE_TIMEOUT_S", str(AGENT_INVOKE_TIMEOUT_S))
            ),

            catalog_page_limit=int(
                os.environ.get("CATALOG_PAGE_LIMIT", str(CATALOG_PAGE_LIMIT))
            ),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
