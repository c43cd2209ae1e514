"""GUI and full-screen overlay fade interface, with a scheduler-driven implementation."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import structlog

from ..flow.scheduler import CancellationToken, FrameScheduler
from .view import PhaseView

logger = structlog.get_logger(__name__)

OnComplete = Optional[Callable[[], None]]


class Fader(ABC):
    """
    Scoped fades. Every fade invokes on_complete exactly once: when it
    finishes, or immediately when its token is cancelled first.
    """

    @abstractmethod
    def fade_in(self, target: PhaseView, duration: float, on_complete: OnComplete,
                initial_delay: float = 0.0, token: Optional[CancellationToken] = None) -> None:
        pass

    @abstractmethod
    def fade_out(self, target: PhaseView, duration: float, on_complete: OnComplete,
                 token: Optional[CancellationToken] = None) -> None:
        pass

    @abstractmethod
    def fade_scene_out(self, color: str, duration: float, on_complete: OnComplete,
                       token: Optional[CancellationToken] = None) -> None:
        """Fade the full-screen overlay to a solid colour."""

    @abstractmethod
    def fade_scene_in(self, color: str, duration: float, on_complete: OnComplete = None,
                      initial_delay: float = 0.0, token: Optional[CancellationToken] = None) -> None:
        """Fade the full-screen overlay away, revealing the scene."""

    @property
    @abstractmethod
    def is_scene_faded_in(self) -> bool:
        pass


class _Animation:
    """Guards the exactly-once completion contract."""

    def __init__(self, on_complete: OnComplete):
        self.on_complete = on_complete
        self.done = False

    def complete(self) -> None:
        if self.done:
            return
        self.done = True
        if self.on_complete is not None:
            self.on_complete()


class ScheduledFader(Fader):
    """Fader whose animations are timers on the frame scheduler."""

    def __init__(self, scheduler: FrameScheduler):
        self.scheduler = scheduler
        self.scene_faded_in = True
        self.scene_color: Optional[str] = None
        self.events: list[tuple[str, str]] = []

    @property
    def is_scene_faded_in(self) -> bool:
        return self.scene_faded_in

    def fade_in(self, target: PhaseView, duration: float, on_complete: OnComplete,
                initial_delay: float = 0.0, token: Optional[CancellationToken] = None) -> None:
        animation = _Animation(on_complete)

        def start() -> None:
            target.set_alpha(0.0)
            target.set_visible(True)
            self.events.append(("fade_in:start", target.name))
            self._after(duration, finish, token)

        def finish() -> None:
            target.set_alpha(1.0)
            self.events.append(("fade_in:done", target.name))
            animation.complete()

        # Cancelled fade-ins leave the GUI hidden
        self._on_cancel(token, animation, lambda: target.set_visible(False))
        self._after(initial_delay, start, token)

    def fade_out(self, target: PhaseView, duration: float, on_complete: OnComplete,
                 token: Optional[CancellationToken] = None) -> None:
        animation = _Animation(on_complete)
        self.events.append(("fade_out:start", target.name))

        def finish() -> None:
            target.set_visible(False)
            self.events.append(("fade_out:done", target.name))
            animation.complete()

        self._on_cancel(token, animation, lambda: target.set_visible(False))
        self._after(duration, finish, token)

    def fade_scene_out(self, color: str, duration: float, on_complete: OnComplete,
                       token: Optional[CancellationToken] = None) -> None:
        animation = _Animation(on_complete)
        self.scene_color = color
        self.events.append(("scene_out:start", color))

        def finish() -> None:
            self.scene_faded_in = False
            self.events.append(("scene_out:done", color))
            animation.complete()

        self._on_cancel(token, animation, finish)
        self._after(duration, finish, token)

    def fade_scene_in(self, color: str, duration: float, on_complete: OnComplete = None,
                      initial_delay: float = 0.0, token: Optional[CancellationToken] = None) -> None:
        animation = _Animation(on_complete)
        self.scene_color = color

        def finish() -> None:
            self.scene_faded_in = True
            self.events.append(("scene_in:done", color))
            animation.complete()

        self._on_cancel(token, animation, finish)
        self._after(initial_delay + duration, finish, token)

    def _after(self, delay: float, callback: Callable[[], None],
               token: Optional[CancellationToken]) -> None:
        if token is not None and token.cancelled:
            return
        if delay <= 0:
            callback()
        else:
            self.scheduler.call_later(delay, callback, token)

    @staticmethod
    def _on_cancel(token: Optional[CancellationToken], animation: _Animation,
                   settle: Callable[[], None]) -> None:
        if token is None:
            return

        def cancelled() -> None:
            if animation.done:
                return
            settle()
            animation.complete()

        token.on_cancel(cancelled)
