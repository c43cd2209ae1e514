"""
External collaborator interfaces consumed by the flow engine.

Rendering, animation and immersive session internals live outside the
engine. Each concern is consumed through a narrow abstract interface, with
a headless implementation used for tests, scripts and demos.
"""
from .fader import Fader, ScheduledFader
from .session import HeadlessSession, ImmersiveSession
from .view import HeadlessView, PhaseView, ViewRegistry

__all__ = [
    "Fader",
    "ScheduledFader",
    "ImmersiveSession",
    "HeadlessSession",
    "PhaseView",
    "HeadlessView",
    "ViewRegistry",
]
