"""
Cooperative frame scheduler and completion primitives.

Everything in the flow engine runs on one logical thread. The scheduler
owns a frame clock; timed waits and animations are timers that fire when
the clock is advanced. Asynchronous steps hand back a Completion which
resolves exactly once, and may be abandoned through a CancellationToken.
"""

import heapq
import itertools
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

# Frame clocks accumulate float error; timers within this window are due.
EPSILON = 1e-9


class CancellationToken:
    """Cooperative cancellation flag with cancel callbacks."""

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self.cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Run callback on cancellation, immediately if already cancelled."""
        if self.cancelled:
            callback()
        else:
            self._callbacks.append(callback)


class Completion:
    """One-shot completion signal returned by asynchronous steps."""

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._done = False
        self._callbacks: list[Callable[[], None]] = []

    @classmethod
    def resolved(cls, name: Optional[str] = None) -> "Completion":
        completion = cls(name)
        completion.resolve()
        return completion

    @property
    def done(self) -> bool:
        return self._done

    def resolve(self) -> bool:
        """Mark complete and run callbacks. Returns False if already resolved."""
        if self._done:
            return False
        self._done = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        return True

    def add_done_callback(self, callback: Callable[[], None]) -> None:
        if self._done:
            callback()
        else:
            self._callbacks.append(callback)


class TimerHandle:
    """A scheduled callback. Cancelling an unfired timer drops it."""

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def _fire(self) -> None:
        if not self.pending:
            return
        self.fired = True
        self.callback()


class FrameScheduler:
    """Fixed-tick clock with timers, advanced once per rendered frame."""

    def __init__(self, frame_interval: float = 1.0 / 60.0):
        self.frame_interval = frame_interval
        self.now = 0.0
        self.frame = 0
        self._timers: list[tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def call_later(
        self,
        delay: float,
        callback: Callable[[], None],
        token: Optional[CancellationToken] = None
    ) -> TimerHandle:
        """Run callback once delay seconds of frame time have elapsed."""
        handle = TimerHandle(self.now + max(delay, 0.0), callback)
        heapq.heappush(self._timers, (handle.due, next(self._sequence), handle))
        if token is not None:
            token.on_cancel(handle.cancel)
        return handle

    def wait(self, delay: float, token: Optional[CancellationToken] = None) -> Completion:
        """Completion that resolves after delay; never resolves if cancelled first."""
        completion = Completion(f"wait:{delay}")
        self.call_later(delay, completion.resolve, token)
        return completion

    def advance(self, dt: Optional[float] = None) -> None:
        """Advance the clock by one frame and fire every timer that became due."""
        self.now += self.frame_interval if dt is None else dt
        self.frame += 1
        self.run_due()

    def run_due(self) -> int:
        """Fire due timers in due order; timers scheduled while firing may also fire."""
        fired = 0
        while self._timers and self._timers[0][0] <= self.now + EPSILON:
            _, _, handle = heapq.heappop(self._timers)
            if handle.pending:
                handle._fire()
                fired += 1
        return fired

    def pending_timers(self) -> int:
        return sum(1 for _, _, handle in self._timers if handle.pending)
