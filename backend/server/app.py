"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (event channel, agent host client)
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.agent_host.client import AgentHostClient
from channel.event_channel import EventChannel
from config import AppConfig
from observability.logger import log_event, set_enabled

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    *,
    agent_host: AgentHostClient | None = None,
    channel: EventChannel | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations and injected collaborators
    - Environment-specific setup
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    set_enabled(config.enable_json_logs)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Event channel and host client are created ONCE per process,
        # inside the running loop
        event_channel = channel if channel is not None else EventChannel()
        host = agent_host if agent_host is not None else build_agent_host(
            config=config, channel=event_channel
        )
        app.state.event_channel = event_channel
        app.state.agent_host = host

        connected = await host.start()
        log_event({
            "event_type": "APP_STARTED",
            "env": config.env,
            "agent_host_url": config.agent_host_url,
            "agent_host_connected": connected,
        })
        try:
            yield
        finally:
            await host.close()
            await event_channel.close()
            log_event({"event_type": "APP_STOPPED", "env": config.env})

    app = FastAPI(title="Chat Stream Controller", lifespan=lifespan)

    app.state.config = config
    app.state.active_gateway = None

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app


def build_agent_host(*, config: AppConfig, channel: EventChannel) -> AgentHostClient:
    """Build the agent host client from configuration."""
    return AgentHostClient(
        url=config.agent_host_url,
        channel=channel,
        provider=config.agent_provider,
        model=config.agent_model,
        invoke_timeout_s=config.agent_invoke_timeout_s,
    )
