"""
Runtime execution shell for a single chat session.

Responsibilities:
- Own chat session state
- Call pure reducer
- Execute commands with side effects (agent send, channel subscription,
  catalog reload, logging)
- Convert side-effect outcomes and stream payloads into events

Non-responsibilities:
- UI transport (gateway)
- Session persistence (agent host)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable

from catalog.records import SessionDetail
from observability.logger import log_event, now_ms
from observability.metrics import timed
from orchestrator.commands import (
    Command,
    LogEvent,
    ReloadCatalog,
    ResetSubscription,
    SendToAgent,
)
from orchestrator.events import (
    Event,
    EventType,
    NewSessionRequested,
    SendFailed,
    SendSucceeded,
    SessionResumed,
    UserMessageSubmitted,
)
from orchestrator.liveness import SubscriptionToken
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import ChatState
from protocol.stream_codec import StreamProtocolError, decode_stream_event


if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


StateListener = Callable[[ChatState], Awaitable[None]]


class Runtime:
    """
    Runtime execution boundary for a single chat session.

    Responsibilities:
    - Own the authoritative chat state
    - Act as the universal event sink for the session
      (user commands, send completions, stream payloads)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects
    - Own the stream subscription and its liveness token

    Guarantees:
    - Reducer is always called exactly once per accepted event
    - State is swapped before any side effect executes
    - Commands are executed in reducer-emitted order
    - Stream payloads delivered to a dead or stale subscription never
      reach the reducer
    - Runtime never performs orchestration logic itself
    """

    def __init__(
        self,
        *,
        context: RuntimeExecutionContext,
        initial_state: ChatState | None = None,
    ) -> None:
        self._state = initial_state if initial_state is not None else ChatState()
        self._ctx = context
        self._token: SubscriptionToken | None = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> ChatState:
        """
        Return the current immutable chat state.

        The returned object must be treated as read-only; state is only
        replaced internally via the reducer.
        """
        return self._state

    def add_listener(self, listener: StateListener) -> None:
        """Register a coroutine called with the new state after every change."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to the stream channel under the current generation."""
        if self._token is not None and self._token.alive:
            return
        self._subscribe(self._state.generation)

    async def shutdown(self) -> None:
        """
        Tear down the stream subscription.

        Called by the gateway on disconnect. Payloads still in flight are
        discarded by the liveness check.
        """
        token = self._token
        self._token = None
        if token is not None and token.invalidate():
            log_event({
                "ts_ms": now_ms(),
                "event_type": "STREAM_UNSUBSCRIBED",
                "connection_id": self._ctx.connection_id,
                "generation": token.generation,
                "reason": "shutdown",
            })
        self._listeners.clear()

    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------

    async def send_message(self, content: str) -> None:
        """Submit a user message; returns once the outbound send completed."""
        await self.handle_event(UserMessageSubmitted(
            event_type=EventType.USER_MESSAGE_SUBMITTED,
            ts_ms=now_ms(),
            content=content,
        ))

    async def new_session(self) -> None:
        await self.handle_event(NewSessionRequested(
            event_type=EventType.NEW_SESSION_REQUESTED,
            ts_ms=now_ms(),
        ))

    async def continue_session(self, detail: SessionDetail) -> None:
        await self.handle_event(SessionResumed(
            event_type=EventType.SESSION_RESUMED,
            ts_ms=now_ms(),
            detail=detail,
        ))

    async def continue_session_by_id(self, session_id: str) -> bool:
        """
        Fetch a persisted session through the catalog and resume it.

        Returns False (state untouched) if the session could not be loaded.
        """
        catalog = self._ctx.catalog
        if catalog is None:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "CATALOG_UNAVAILABLE",
                "connection_id": self._ctx.connection_id,
                "operation": "continue_session",
            })
            return False

        detail = await catalog.fetch(session_id)
        if detail is None:
            return False

        await self.continue_session(detail)
        return True

    async def delete_session(self, session_id: str) -> bool:
        """
        Delete a persisted session. The current chat is left as is.
        """
        catalog = self._ctx.catalog
        if catalog is None:
            return False

        deleted = await catalog.delete(session_id)
        if deleted:
            await catalog.reload(reason="session_deleted")
        return deleted

    async def reload_catalog(self, reason: str = "request") -> None:
        if self._ctx.catalog is not None:
            await self._ctx.catalog.reload(reason=reason)

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        Processing steps:
        1. Pass the current state and event to the pure reducer
        2. Swap in the new state
        3. Notify state listeners if the state changed
        4. Execute all emitted commands sequentially

        All event sources converge here:
        - User commands (send, new session, resume)
        - Send completions (SendSucceeded / SendFailed)
        - Agent stream payloads accepted by the liveness check

        Steps 1 and 2 never await, so events are applied atomically in
        the order they reach this method.
        """
        prev_state = self._state
        new_state, commands = reduce(prev_state, event)
        self._state = new_state

        if new_state is not prev_state:
            await self._notify(new_state)

        for cmd in commands:
            await self._execute_command(cmd)

    async def _on_stream_payload(self, token: SubscriptionToken, payload: object) -> None:
        """Channel handler: liveness check, decode, then reduce."""
        if not token.accepts(self._state.generation):
            log_event({
                "ts_ms": now_ms(),
                "event_type": "STALE_STREAM_EVENT_DROPPED",
                "connection_id": self._ctx.connection_id,
                "token_generation": token.generation,
                "generation": self._state.generation,
                "token_alive": token.alive,
            })
            return

        try:
            event = decode_stream_event(payload, ts_ms=now_ms())
        except StreamProtocolError as e:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "STREAM_EVENT_REJECTED",
                "connection_id": self._ctx.connection_id,
                "error_type": type(e).__name__,
                "message": str(e),
            })
            return

        await self.handle_event(event)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "connection_id": self._ctx.connection_id,
            })

        elif isinstance(cmd, SendToAgent):
            await self._send_to_agent(cmd)

        elif isinstance(cmd, ResetSubscription):
            self._subscribe(cmd.generation)

        elif isinstance(cmd, ReloadCatalog):
            if self._ctx.catalog is not None:
                await self._ctx.catalog.reload(reason=cmd.reason)

        else:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "COMMAND_NOT_HANDLED",
                "connection_id": self._ctx.connection_id,
                "command_type": type(cmd).__name__,
            })

    async def _send_to_agent(self, cmd: SendToAgent) -> None:
        """
        Issue the outbound send and feed exactly one completion event back.
        """
        try:
            with timed(
                "agent_send_latency",
                connection_id=self._ctx.connection_id,
                session_id=cmd.session_id,
            ):
                session_id = await self._ctx.backend.send_message(
                    cmd.session_id, cmd.message
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": now_ms(),
                "event_type": "AGENT_SEND_FAILED",
                "connection_id": self._ctx.connection_id,
                "session_id": cmd.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await self.handle_event(SendFailed(
                event_type=EventType.SEND_FAILED,
                ts_ms=now_ms(),
                generation=cmd.generation,
                turn_id=cmd.turn_id,
                reason=str(exc),
            ))
            return

        await self.handle_event(SendSucceeded(
            event_type=EventType.SEND_SUCCEEDED,
            ts_ms=now_ms(),
            generation=cmd.generation,
            turn_id=cmd.turn_id,
            session_id=session_id,
        ))

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------

    def _subscribe(self, generation: int) -> None:
        """Invalidate the current token (unsubscribing once) and listen afresh."""
        old = self._token
        if old is not None and old.invalidate():
            log_event({
                "ts_ms": now_ms(),
                "event_type": "STREAM_UNSUBSCRIBED",
                "connection_id": self._ctx.connection_id,
                "generation": old.generation,
                "reason": "reset",
            })

        token = SubscriptionToken(generation)
        self._token = token

        async def _handler(payload: object) -> None:
            await self._on_stream_payload(token, payload)

        subscription = self._ctx.channel.listen(self._ctx.channel_name, _handler)
        token.bind(subscription.unsubscribe)

        log_event({
            "ts_ms": now_ms(),
            "event_type": "STREAM_SUBSCRIBED",
            "connection_id": self._ctx.connection_id,
            "channel": self._ctx.channel_name,
            "generation": generation,
        })

    async def _notify(self, state: ChatState) -> None:
        for listener in list(self._listeners):
            try:
                await listener(state)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": now_ms(),
                    "event_type": "STATE_LISTENER_ERROR",
                    "connection_id": self._ctx.connection_id,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
