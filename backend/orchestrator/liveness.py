"""
Subscription liveness token.

The event channel honors unsubscribe asynchronously: a payload already
in flight can still reach the handler after unsubscribe() was requested.
The runtime therefore owns one token per subscription and checks it at
dispatch time, before anything reaches the reducer.

A token is bound to the state generation it was created for. It is
dead once invalidated, and stale once the state generation moved on.
"""

from __future__ import annotations

from typing import Callable


class SubscriptionToken:
    """Liveness flag + single-shot unsubscribe for one stream subscription."""

    def __init__(self, generation: int) -> None:
        self.generation = generation
        self._alive = True
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def alive(self) -> bool:
        return self._alive

    def bind(self, unsubscribe: Callable[[], None]) -> None:
        """Attach the transport unsubscribe handle once listening succeeded."""
        if not self._alive:
            # Invalidated while subscribing: release right away
            unsubscribe()
            return
        self._unsubscribe = unsubscribe

    def accepts(self, current_generation: int) -> bool:
        """True if a payload delivered to this token may be applied."""
        return self._alive and self.generation == current_generation

    def invalidate(self) -> bool:
        """
        Kill the token and call the transport unsubscribe exactly once.

        Returns False if the token was already invalidated.
        """
        if not self._alive:
            return False
        self._alive = False

        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()
        return True
