"""
Local mirror of the persisted session catalog.

Responsibilities:
- Hold the most recently listed session summaries
- Reload the list on request (turn completion, deletion, UI request)
- Fetch a session detail for resuming
- Delete a session and drop it from the local list

Non-responsibilities:
- No persistence (the agent host owns durability)
- No access to chat session state

Failures are logged and never raised: a stale list is preferable to
breaking the chat session.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from catalog.records import CatalogRecordError, SessionDetail, SessionSummary
from constants import CATALOG_PAGE_LIMIT, CATALOG_PAGE_OFFSET
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.runtime_context import SessionCatalogProtocol


ListChangedFn = Callable[[tuple[SessionSummary, ...]], Awaitable[None]]


class CatalogMirror:
    """Session list as last seen by this connection."""

    def __init__(
        self,
        catalog: SessionCatalogProtocol,
        *,
        connection_id: str | None = None,
        page_limit: int = CATALOG_PAGE_LIMIT,
        on_changed: ListChangedFn | None = None,
    ) -> None:
        self._catalog = catalog
        self._connection_id = connection_id
        self._page_limit = page_limit
        self._on_changed = on_changed
        self._sessions: tuple[SessionSummary, ...] = ()

    @property
    def sessions(self) -> tuple[SessionSummary, ...]:
        return self._sessions

    async def reload(self, reason: str = "request") -> tuple[SessionSummary, ...]:
        """Refresh the list. On failure the previous list is kept."""
        try:
            with timed(
                "catalog_reload_latency",
                connection_id=self._connection_id,
                details={"reason": reason},
            ):
                listed = await self._catalog.list_sessions(
                    self._page_limit, CATALOG_PAGE_OFFSET
                )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "CATALOG_RELOAD_FAILED",
                "connection_id": self._connection_id,
                "reason": reason,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return self._sessions

        self._sessions = tuple(listed)
        log_event({
            "event_type": "catalog_reloaded",
            "connection_id": self._connection_id,
            "reason": reason,
            "count": len(self._sessions),
        })
        await self._notify()
        return self._sessions

    async def fetch(self, session_id: str) -> SessionDetail | None:
        """Fetch one session for resuming; None if it cannot be loaded."""
        try:
            return await self._catalog.get_session(session_id)
        except CatalogRecordError as exc:
            log_event({
                "event_type": "CATALOG_RECORD_INVALID",
                "connection_id": self._connection_id,
                "session_id": session_id,
                "message": str(exc),
            })
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "CATALOG_FETCH_FAILED",
                "connection_id": self._connection_id,
                "session_id": session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
        return None

    async def delete(self, session_id: str) -> bool:
        """Delete a persisted session; drops it locally only on success."""
        try:
            await self._catalog.delete_session(session_id)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "CATALOG_DELETE_FAILED",
                "connection_id": self._connection_id,
                "session_id": session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return False

        self._sessions = tuple(s for s in self._sessions if s.id != session_id)
        log_event({
            "event_type": "catalog_session_deleted",
            "connection_id": self._connection_id,
            "session_id": session_id,
        })
        await self._notify()
        return True

    async def _notify(self) -> None:
        if self._on_changed is not None:
            await self._on_changed(self._sessions)
