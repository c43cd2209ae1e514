"""
Signal publishing module.

Typed publish/subscribe primitive used for cross-cutting signals: button
presses, debug overrides and domain events such as localization
destabilization. The bus has no ownership semantics; subscriptions are
owned by the phases that acquire them.
"""
from .bus import EventBus, SubscriptionToken
from .names import Signals

__all__ = ["EventBus", "SubscriptionToken", "Signals"]
