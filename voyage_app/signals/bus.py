"""Synchronous fan-out event bus."""

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], None]


@dataclass(frozen=True)
class SubscriptionToken:
    """Handle returned by subscribe(); the only way to unsubscribe."""
    signal: str
    serial: int
    owner: Optional[str] = None


class EventBus:
    """
    Publish/subscribe primitive.

    Handlers are invoked synchronously, in registration order, on the
    publisher's call stack. Handlers added while a signal is being delivered
    do not receive it; handlers removed during delivery are skipped.
    """

    def __init__(self):
        self.logger = logger
        self._handlers: dict[str, dict[int, Handler]] = {}
        self._tokens: dict[int, SubscriptionToken] = {}
        self._serials = itertools.count(1)

    def subscribe(self, signal: str, handler: Handler, owner: Optional[str] = None) -> SubscriptionToken:
        """Register handler for signal and return its token."""
        token = SubscriptionToken(signal=signal, serial=next(self._serials), owner=owner)
        self._handlers.setdefault(signal, {})[token.serial] = handler
        self._tokens[token.serial] = token

        self.logger.debug("Subscribed", signal=signal, serial=token.serial, owner=owner)
        return token

    def unsubscribe(self, token: SubscriptionToken) -> bool:
        """Remove a registration. Returns False if it was already removed."""
        handlers = self._handlers.get(token.signal)
        if not handlers or token.serial not in handlers:
            return False

        del handlers[token.serial]
        del self._tokens[token.serial]
        if not handlers:
            del self._handlers[token.signal]

        self.logger.debug("Unsubscribed", signal=token.signal, serial=token.serial, owner=token.owner)
        return True

    def publish(self, signal: str, payload: Any = None) -> int:
        """Deliver payload to every current subscriber of signal; returns delivery count."""
        handlers = list(self._handlers.get(signal, {}).items())

        self.logger.debug("Publishing signal", signal=signal, subscribers=len(handlers))

        delivered = 0
        for serial, handler in handlers:
            # Skip handlers removed by an earlier handler of this same delivery
            if serial not in self._tokens:
                continue
            handler(payload)
            delivered += 1

        return delivered

    def subscriber_count(self, signal: Optional[str] = None, owner: Optional[str] = None) -> int:
        """Count active subscriptions, optionally filtered by signal and/or owner."""
        return sum(
            1 for token in self._tokens.values()
            if (signal is None or token.signal == signal)
            and (owner is None or token.owner == owner)
        )

    def is_active(self, token: SubscriptionToken) -> bool:
        return token.serial in self._tokens
