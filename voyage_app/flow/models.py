"""
Flow data models: activation states, exit decisions and the contexts a
flow graph is assembled with.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ..collaborators.fader import Fader, ScheduledFader
from ..collaborators.session import HeadlessSession, ImmersiveSession
from ..collaborators.view import ViewRegistry
from ..config.defaults import SceneColors, TimingParams
from ..persistence.flag_store import FlagCache
from ..signals.bus import EventBus
from .scheduler import FrameScheduler

if TYPE_CHECKING:
    from .node import PhaseNode


class ActivationState(str, Enum):
    """Phase lifecycle states. Exactly one phase in a graph is not INACTIVE."""
    INACTIVE = "inactive"
    ENTERING = "entering"
    RUNNING = "running"
    EXITING = "exiting"


@dataclass(frozen=True)
class ExitDecision:
    """The branch a phase resolved to leave by, and what proposed it."""
    branch: str
    reason: str
    frame: int = 0


@dataclass(frozen=True)
class TransitionRecord:
    """A completed hand-off between two phases."""
    from_phase: str
    to_phase: str
    branch: str
    reason: str
    skipped: bool
    started_at: float
    finished_at: float


class ProcessContext:
    """
    State scoped to the application process: initialized empty at process
    start, never persisted, and only reset by starting a new process (a new
    ProcessContext). Shared by every flow graph built in that process.
    """

    def __init__(self):
        self._ran: set[str] = set()

    def has_run(self, key: str) -> bool:
        return key in self._ran

    def mark_run(self, key: str) -> bool:
        """Record that key ran; returns False if it had already run."""
        if key in self._ran:
            return False
        self._ran.add(key)
        return True

    @property
    def ran(self) -> frozenset[str]:
        return frozenset(self._ran)


Query = Callable[[], bool]


@dataclass
class Collaborators:
    """External subsystems consumed by phases."""
    fader: Fader
    session: ImmersiveSession
    views: ViewRegistry
    queries: dict[str, Query] = field(default_factory=dict)

    @classmethod
    def headless(
        cls,
        scheduler: FrameScheduler,
        views: Optional[ViewRegistry] = None,
        queries: Optional[dict[str, Query]] = None
    ) -> "Collaborators":
        """Collaborators that record state instead of rendering."""
        return cls(
            fader=ScheduledFader(scheduler),
            session=HeadlessSession(),
            views=views or ViewRegistry(),
            queries=dict(queries or {}),
        )


ExitCallback = Callable[["PhaseNode", Optional[str]], None]


@dataclass
class FlowContext:
    """Everything a flow graph and its phases are assembled with."""
    scheduler: FrameScheduler
    bus: EventBus
    flags: FlagCache
    process: ProcessContext
    collaborators: Collaborators
    timing: TimingParams = field(default_factory=TimingParams)
    colors: SceneColors = field(default_factory=SceneColors)
    on_experience_exit: Optional[ExitCallback] = None
