"""
Runtime execution context.

Provides Runtime with access to the imperative collaborators it needs
for command execution (agent backend, event channel, session catalog).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from catalog.mirror import CatalogMirror
    from catalog.records import SessionDetail, SessionSummary


StreamHandler = Callable[[Any], Awaitable[None]]


# ---------------------------------------------------------------------
# Collaborator Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class AgentBackendProtocol(Protocol):
    async def send_message(self, session_id: str | None, message: str) -> str:
        """
        Start one agent turn.

        Returns the (possibly newly created) session identifier.
        Raises on transport/backend failure; the turn did not start.
        Transcript content is delivered only through the event channel.
        """
        ...


class SubscriptionProtocol(Protocol):
    def unsubscribe(self) -> None:
        """
        Request that no further payloads be delivered.

        Honored asynchronously: payloads already in flight may still
        reach the handler.
        """


@runtime_checkable
class EventChannelProtocol(Protocol):
    def listen(self, name: str, handler: StreamHandler) -> SubscriptionProtocol: ...


@runtime_checkable
class SessionCatalogProtocol(Protocol):
    async def list_sessions(self, limit: int, offset: int) -> list[SessionSummary]: ...
    async def get_session(self, session_id: str) -> SessionDetail: ...
    async def delete_session(self, session_id: str) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    Runtime is allowed to:
    - Call the agent backend
    - Subscribe to / unsubscribe from the event channel
    - Ask the catalog mirror to reload or fetch

    Runtime is NOT allowed to:
    - Share its session state with any collaborator
    """

    def __init__(
        self,
        *,
        connection_id: str,
        backend: AgentBackendProtocol,
        channel: EventChannelProtocol,
        channel_name: str,
        catalog: CatalogMirror | None = None,
    ) -> None:
        self.connection_id = connection_id
        self.backend = backend
        self.channel = channel
        self.channel_name = channel_name
        self.catalog = catalog
