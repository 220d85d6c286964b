"""
In-process named event channel.

Responsibilities:
- Fan out payloads emitted on a named feed to every listener of that feed
- Deliver asynchronously, one payload at a time per listener, in emit order
- Hand each listener an unsubscribe handle

Delivery model:
- Every subscription owns a queue and a pump task.
- emit() never awaits; it only enqueues.
- unsubscribe() detaches the listener from the feed immediately, but the
  pump stops only after draining what was already queued. A handler can
  therefore run after unsubscribe() returned; consumers that care must
  guard with their own liveness check.

Non-responsibilities:
- No decoding (payloads are opaque)
- No ordering across different listeners
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from constants import CHANNEL_QUEUE_MAX_EVENTS
from observability.logger import log_event


Handler = Callable[[Any], Awaitable[None]]

# Queue marker: everything before it is delivered, nothing after
_STOP = object()


class Subscription:
    """One listener on one named feed."""

    def __init__(
        self,
        *,
        channel: EventChannel,
        name: str,
        handler: Handler,
        max_queue_events: int,
    ) -> None:
        self._channel = channel
        self.name = name
        self._handler = handler
        # Bound enforced in offer() so the stop marker always fits
        self._max_queue_events = max_queue_events
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closing = False
        self._task: asyncio.Task[None] = asyncio.create_task(self._pump())

    @property
    def active(self) -> bool:
        """True until unsubscribe() is requested."""
        return not self._closing

    def offer(self, payload: Any) -> bool:
        """Enqueue a payload; False if closing or the queue is full."""
        if self._closing:
            return False
        if 0 < self._max_queue_events <= self._queue.qsize():
            log_event({
                "event_type": "CHANNEL_QUEUE_FULL",
                "channel": self.name,
                "queue_size": self._queue.qsize(),
            })
            return False
        self._queue.put_nowait(payload)
        return True

    def unsubscribe(self) -> None:
        """
        Request that delivery stop.

        Idempotent on the channel side; a repeated call is logged since
        callers are expected to unsubscribe exactly once.
        """
        if self._closing:
            log_event({
                "event_type": "CHANNEL_UNSUBSCRIBE_REPEATED",
                "channel": self.name,
            })
            return

        self._closing = True
        self._channel._detach(self)  # pylint: disable=protected-access
        self._queue.put_nowait(_STOP)

    async def wait_closed(self) -> None:
        """Wait until the pump delivered everything queued before unsubscribe()."""
        await asyncio.gather(self._task, return_exceptions=True)

    def abort(self) -> None:
        """Hard stop: cancel the pump without draining."""
        self._closing = True
        self._channel._detach(self)  # pylint: disable=protected-access
        if not self._task.done():
            self._task.cancel()

    async def _pump(self) -> None:
        while True:
            payload = await self._queue.get()
            if payload is _STOP:
                return

            try:
                await self._handler(payload)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # pylint: disable=broad-exception-caught
                # A failing handler must not stop delivery of later payloads
                log_event({
                    "event_type": "CHANNEL_HANDLER_ERROR",
                    "channel": self.name,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })


class EventChannel:
    """
    Process-scoped pub/sub keyed by feed name.

    Must be used from inside a running event loop.
    """

    def __init__(self, *, max_queue_events: int = CHANNEL_QUEUE_MAX_EVENTS) -> None:
        self._max_queue_events = max_queue_events
        self._subscriptions: dict[str, list[Subscription]] = {}

    def listen(self, name: str, handler: Handler) -> Subscription:
        """Subscribe handler to the named feed."""
        sub = Subscription(
            channel=self,
            name=name,
            handler=handler,
            max_queue_events=self._max_queue_events,
        )
        self._subscriptions.setdefault(name, []).append(sub)
        return sub

    def emit(self, name: str, payload: Any) -> int:
        """
        Enqueue payload for every current listener of the feed.

        Returns the number of listeners that accepted it.
        """
        delivered = 0
        for sub in list(self._subscriptions.get(name, ())):
            if sub.offer(payload):
                delivered += 1
        return delivered

    def listener_count(self, name: str) -> int:
        return len(self._subscriptions.get(name, ()))

    async def close(self) -> None:
        """Stop every subscription and wait for pumps to finish."""
        subs = [s for group in self._subscriptions.values() for s in group]
        for sub in subs:
            sub.abort()
        await asyncio.gather(*(s.wait_closed() for s in subs), return_exceptions=True)

    def _detach(self, sub: Subscription) -> None:
        group = self._subscriptions.get(sub.name)
        if group is None:
            return
        if sub in group:
            group.remove(sub)
        if not group:
            del self._subscriptions[sub.name]
