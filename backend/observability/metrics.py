"""
Latency metrics.

One metric = one METRIC_TIMER log event; nothing is aggregated in process.
Durations use monotonic time, ts_ms uses wall-clock time for correlation
with the rest of the log.

Emitted metrics:
    agent_send_latency      outbound send_message invoke (runtime)
    catalog_reload_latency  list_sessions refresh (catalog mirror)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event, now_ms


@contextmanager
def timed(
    name: str,
    *,
    connection_id: str | None = None,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Time the enclosed block and emit exactly one METRIC_TIMER event.

    The event is emitted on every exit path; "ok" is False when the block
    raised. Exceptions are never suppressed.

    Usage:
        with timed("agent_send_latency", connection_id=self._ctx.connection_id):
            session_id = await backend.send_message(session_id, message)
    """
    start_ns = time.monotonic_ns()
    ok = False
    try:
        yield
        ok = True
    finally:
        log_event({
            "ts_ms": now_ms(),
            "event_type": "METRIC_TIMER",
            "metric": name,
            "value_ms": (time.monotonic_ns() - start_ns) // 1_000_000,
            "ok": ok,
            "connection_id": connection_id,
            "session_id": session_id,
            "details": details or {},
        })
