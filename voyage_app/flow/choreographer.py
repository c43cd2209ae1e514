"""
Exit choreography.

A phase exit is an ordered sequence of steps: fade the GUI out, run the
declared side effects (scene overlay fades, stopping the immersive
session), persist the phase's completion flag, and finally hand control to
the successor. Each step starts only after the previous one completed. The
whole sequence runs under one CancellationToken; once it is cancelled no
further step starts.
"""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from ..logging.config import get_transition_logger
from .models import ExitDecision
from .scheduler import CancellationToken, Completion

if TYPE_CHECKING:
    from .node import PhaseNode

transition_logger = get_transition_logger(__name__)

StepAction = Callable[[CancellationToken], Completion]


@dataclass(frozen=True)
class ChoreographyStep:
    """A named, possibly asynchronous exit step."""
    name: str
    action: StepAction


def immediate_step(name: str, action: Callable[[], None]) -> ChoreographyStep:
    """Wrap a synchronous callable as a step that completes as soon as it runs."""

    def run(token: CancellationToken) -> Completion:
        action()
        return Completion.resolved(name)

    return ChoreographyStep(name, run)


class ChoreographyRun:
    """One in-flight exit sequence."""

    def __init__(
        self,
        source: "PhaseNode",
        target: "PhaseNode",
        decision: ExitDecision,
        steps: list[ChoreographyStep],
        token: CancellationToken
    ):
        self.source = source
        self.target = target
        self.decision = decision
        self.steps = steps
        self.token = token
        self.completion = Completion(f"choreography:{source.identity}->{target.identity}")
        self.completed_steps: list[str] = []
        self.current_step: str = ""
        self._index = 0
        self._started = time.time()
        self.logger = transition_logger.bind(
            from_phase=source.identity,
            to_phase=target.identity,
            branch=decision.branch
        )

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def start(self) -> Completion:
        self.logger.info("Exit choreography started", steps=[step.name for step in self.steps])
        self._next()
        return self.completion

    def _next(self) -> None:
        if self.token.cancelled:
            self.logger.warning(
                "Exit choreography cancelled",
                completed_steps=self.completed_steps,
                remaining=[step.name for step in self.steps[self._index:]]
            )
            return

        if self._index >= len(self.steps):
            self.logger.info(
                "Exit choreography completed",
                completed_steps=self.completed_steps,
                duration_ms=round((time.time() - self._started) * 1000, 2)
            )
            self.completion.resolve()
            return

        step = self.steps[self._index]
        self._index += 1
        self.current_step = step.name
        self.logger.debug("Choreography step started", step=step.name)

        step.action(self.token).add_done_callback(lambda: self._step_done(step))

    def _step_done(self, step: ChoreographyStep) -> None:
        self.completed_steps.append(step.name)
        self.logger.debug("Choreography step completed", step=step.name)
        self._next()


class TransitionChoreographer:
    """Runs exit sequences strictly in order, one at a time per graph."""

    def __init__(self):
        self.current: Optional[ChoreographyRun] = None

    def run(
        self,
        source: "PhaseNode",
        target: "PhaseNode",
        decision: ExitDecision,
        steps: list[ChoreographyStep],
        handoff: Callable[[], None],
        token: CancellationToken
    ) -> Completion:
        """Run steps, then handoff as the final step."""
        sequence = list(steps) + [immediate_step("activate_target", handoff)]
        self.current = ChoreographyRun(source, target, decision, sequence, token)
        return self.current.start()

    @property
    def busy(self) -> bool:
        return (
            self.current is not None
            and not self.current.completion.done
            and not self.current.cancelled
        )
