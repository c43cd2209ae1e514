"""Scoped subscription and animation handles for one phase activation."""

from typing import Any, Callable

import structlog

from ..errors import TransitionError
from ..signals.bus import EventBus, SubscriptionToken
from .scheduler import CancellationToken

logger = structlog.get_logger(__name__)


class ActivationScope:
    """
    Owns everything a phase acquires during one activation.

    Subscriptions, timers and scoped animations are registered here and
    released together by close(), which is idempotent.
    """

    def __init__(self, bus: EventBus, owner: str):
        self.bus = bus
        self.owner = owner
        self.token = CancellationToken(owner)
        self.subscriptions: list[SubscriptionToken] = []
        self.closed = False

    def subscribe(self, signal: str, handler: Callable[[Any], None]) -> SubscriptionToken:
        if self.closed:
            raise TransitionError(
                f"Cannot subscribe {signal} on a closed activation scope",
                current_state="closed",
                attempted_transition="subscribe"
            )
        token = self.bus.subscribe(signal, handler, owner=self.owner)
        self.subscriptions.append(token)
        return token

    def close(self) -> int:
        """Release every subscription and cancel pending scoped work."""
        if self.closed:
            return 0

        released = 0
        for token in self.subscriptions:
            if self.bus.unsubscribe(token):
                released += 1
        self.subscriptions.clear()
        self.token.cancel()
        self.closed = True

        logger.debug("Activation scope closed", owner=self.owner, released=released)
        return released
