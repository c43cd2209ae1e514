"""
Phase node lifecycle and branch resolution.

A PhaseNode is one screen/step of a guided experience. It owns its GUI
visibility, subscribes to the signals that drive its branching while it is
active, and resolves a single exit branch per activation. The exit itself
is carried out by the TransitionChoreographer owned by the FlowGraph.

Lifecycle:
    activate()   INACTIVE → ENTERING → RUNNING (after the entry fade)
                 INACTIVE → RUNNING with skipped=True when the skip
                 predicate holds; the exit branch is resolved immediately
    tick()       RUNNING → EXITING once an exit branch has been accepted
    deactivate() any → INACTIVE, releasing every scoped subscription
"""

from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Optional

from ..collaborators.view import PhaseView
from ..errors import (
    CollaboratorUnavailableError,
    ConfigurationError,
    InvalidGraphError,
    MissingElementError,
    MissingSuccessorError,
    TransitionError,
)
from ..logging.config import get_flow_logger, log_branch_decision
from .choreographer import ChoreographyStep, immediate_step
from .models import ActivationState, ExitDecision, FlowContext
from .scheduler import CancellationToken, Completion, TimerHandle
from .scope import ActivationScope

if TYPE_CHECKING:
    from .graph import FlowGraph

flow_logger = get_flow_logger(__name__)


class ExitResolver:
    """
    Resolves the exit branch of one activation cycle.

    The first accepted proposal wins. Later proposals in the same cycle,
    including stale signals that arrive once the choreographer has latched
    the decision, are ignored and logged.
    """

    def __init__(self, phase: str, frame: int = 0):
        self.phase = phase
        self.frame = frame
        self.decision: Optional[ExitDecision] = None
        self.latched = False
        self.ignored: list[ExitDecision] = []

    @property
    def pending(self) -> bool:
        return self.decision is not None and not self.latched

    def propose(self, branch: str, reason: str, frame: int = 0) -> bool:
        proposal = ExitDecision(branch=branch, reason=reason, frame=frame)

        if self.decision is not None:
            self.ignored.append(proposal)
            log_branch_decision(
                flow_logger,
                phase=self.phase,
                branch=branch,
                accepted=False,
                reason=reason,
                context={
                    "resolved_branch": self.decision.branch,
                    "latched": self.latched,
                }
            )
            return False

        self.decision = proposal
        log_branch_decision(flow_logger, phase=self.phase, branch=branch, accepted=True, reason=reason)
        return True

    def latch(self) -> ExitDecision:
        """Hand the decision to the choreographer; it is immutable afterwards."""
        if self.decision is None:
            raise TransitionError(
                f"Phase {self.phase} has no exit decision to latch",
                current_state="unresolved",
                attempted_transition="latch"
            )
        self.latched = True
        return self.decision


class PhaseNode:
    """Base class for every phase kind."""

    kind = "phase"

    # Branches that must be wired at assembly, and those that may be
    branches: tuple[str, ...] = ()
    optional_branches: tuple[str, ...] = ()

    # Branch taken when the skip predicate holds at activation
    skip_branch = "next"

    requires_view = False
    ar_backed = False

    def __init__(
        self,
        identity: str,
        successors: Optional[dict[str, Optional[str]]] = None,
        view: Optional[str] = None,
        ar_backed: Optional[bool] = None,
        fade_duration: Optional[float] = None,
    ):
        self.identity = identity
        self.successor_ids = dict(successors or {})
        self.view_name = view
        if ar_backed is not None:
            self.ar_backed = ar_backed
        self._fade_duration = fade_duration

        self.state = ActivationState.INACTIVE
        self.skipped = False
        self.activation_count = 0

        self.graph: Optional["FlowGraph"] = None
        self.view: Optional[PhaseView] = None
        self.successors: dict[str, "PhaseNode"] = {}
        self.scope: Optional[ActivationScope] = None
        self.resolver: Optional[ExitResolver] = None

        self.logger = flow_logger.bind(phase=identity, kind=self.kind)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity!r}, state={self.state.value})"

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    @property
    def context(self) -> FlowContext:
        if self.graph is None:
            raise ConfigurationError(
                f"Phase {self.identity} is not bound to a flow graph",
                context={"phase": self.identity}
            )
        return self.graph.context

    def required_branches(self) -> tuple[str, ...]:
        return self.branches

    def required_controls(self) -> tuple[str, ...]:
        return ()

    def bind(self, graph: "FlowGraph") -> None:
        """Resolve successors and view; every wiring problem is raised here."""
        self.graph = graph
        allowed = set(self.branches) | set(self.optional_branches)

        for branch in self.required_branches():
            if self.successor_ids.get(branch) is None:
                raise MissingSuccessorError(
                    f"Phase {self.identity} has no successor for branch '{branch}'",
                    phase=self.identity,
                    branch=branch
                )

        successors = {}
        for branch, target_id in self.successor_ids.items():
            if branch not in allowed:
                raise ConfigurationError(
                    f"Phase {self.identity} ({self.kind}) has no branch named '{branch}'",
                    context={"phase": self.identity, "branch": branch, "allowed": sorted(allowed)}
                )
            if target_id is None or target_id not in graph.nodes:
                raise MissingSuccessorError(
                    f"Phase {self.identity} branch '{branch}' names unknown phase {target_id!r}",
                    phase=self.identity,
                    branch=branch
                )
            if target_id == self.identity:
                raise InvalidGraphError(
                    f"Phase {self.identity} lists itself as successor for '{branch}'",
                    context={"phase": self.identity, "branch": branch}
                )
            successors[branch] = graph.nodes[target_id]
        self.successors = successors

        if self.view_name is not None:
            self.view = self.context.collaborators.views.get(self.view_name)
            if self.view is None:
                raise MissingElementError(
                    f"Phase {self.identity} view '{self.view_name}' is not registered",
                    phase=self.identity,
                    element=self.view_name
                )
        elif self.requires_view:
            raise MissingElementError(
                f"Phase {self.identity} ({self.kind}) requires a view",
                phase=self.identity,
                element="view"
            )

        for control in self.required_controls():
            if self.view is None or not self.view.has_control(control):
                raise MissingElementError(
                    f"Phase {self.identity} view is missing control '{control}'",
                    phase=self.identity,
                    element=control
                )

        self.on_bind()

    def on_bind(self) -> None:
        """Kind-specific assembly checks."""

    def has_branch(self, branch: str) -> bool:
        return branch in self.successors

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self) -> None:
        if self.state is not ActivationState.INACTIVE:
            raise TransitionError(
                f"Phase {self.identity} is already active",
                current_state=self.state.value,
                attempted_transition=ActivationState.ENTERING.value
            )

        context = self.context
        self.activation_count += 1
        self.scope = ActivationScope(context.bus, owner=self.identity)
        self.resolver = ExitResolver(self.identity, frame=context.scheduler.frame)
        self.state = ActivationState.ENTERING

        if self.should_skip():
            self.skipped = True
            if self.view is not None:
                self.view.set_visible(False)
            self.state = ActivationState.RUNNING
            self.logger.info("Phase skipped", activation=self.activation_count, branch=self.skip_branch)
            self.propose_exit(self.skip_branch, reason="skip")
            return

        self.skipped = False
        self.logger.info("Phase activated", activation=self.activation_count)
        self.on_enter()

        if self.view is not None and self.presents_view():
            context.collaborators.fader.fade_in(
                self.view,
                self.fade_duration,
                partial(self._entered, self.scope),
                initial_delay=self.entry_delay(),
                token=self.scope.token
            )
        else:
            self._entered(self.scope)

    def _entered(self, scope: ActivationScope) -> None:
        # Completions from a previous activation are stale
        if scope is not self.scope or scope.closed or self.state is not ActivationState.ENTERING:
            return
        self.state = ActivationState.RUNNING
        self.logger.debug("Phase running")
        self.on_running()

    def tick(self) -> None:
        if self.state is not ActivationState.RUNNING:
            return

        self.on_tick()

        if self.resolver is not None and self.resolver.pending:
            self.begin_exit()

    def begin_exit(self) -> None:
        decision = self.resolver.latch()
        target = self.successors[decision.branch]
        self.state = ActivationState.EXITING

        self.logger.info(
            "Phase exiting",
            branch=decision.branch,
            target=target.identity,
            reason=decision.reason,
            skipped=self.skipped
        )
        self.graph.begin_transition(self, target, decision)

    def deactivate(self) -> None:
        """Release every scoped registration. Safe to call repeatedly."""
        if self.scope is not None:
            self.scope.close()

        if self.state is ActivationState.INACTIVE:
            return

        self.on_exit()
        self.state = ActivationState.INACTIVE
        self.logger.info("Phase deactivated", skipped=self.skipped)

    # ------------------------------------------------------------------
    # Kind hooks
    # ------------------------------------------------------------------

    def should_skip(self) -> bool:
        return False

    def presents_view(self) -> bool:
        return True

    def entry_delay(self) -> float:
        return 0.0

    @property
    def fade_duration(self) -> float:
        if self._fade_duration is not None:
            return self._fade_duration
        return self.context.timing.gui_fade_duration

    def on_enter(self) -> None:
        """Subscribe to signals and prepare the GUI; called for non-skipped activations."""

    def on_running(self) -> None:
        pass

    def on_tick(self) -> None:
        pass

    def on_exit(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Branching
    # ------------------------------------------------------------------

    @property
    def exit_decision(self) -> Optional[ExitDecision]:
        return self.resolver.decision if self.resolver is not None else None

    @property
    def exit_target(self) -> Optional["PhaseNode"]:
        decision = self.exit_decision
        return self.successors[decision.branch] if decision is not None else None

    def propose_exit(self, branch: str, reason: str) -> bool:
        """Offer a branch as this activation's exit. First accepted wins."""
        if self.resolver is None or self.state is ActivationState.INACTIVE:
            self.logger.warning("Exit proposed to inactive phase", branch=branch, reason=reason)
            return False

        if branch not in self.successors:
            raise MissingSuccessorError(
                f"Phase {self.identity} proposed unwired branch '{branch}'",
                phase=self.identity,
                branch=branch
            )

        return self.resolver.propose(branch, reason, frame=self.context.scheduler.frame)

    def subscribe(self, signal: str, handler: Callable[[Any], None]) -> None:
        self.scope.subscribe(signal, handler)

    def subscribe_branch(self, signal: str, branch: str) -> None:
        """Subscribe signal so that it proposes branch when delivered."""
        self.subscribe(signal, lambda payload: self.propose_exit(branch, reason=signal))

    def after(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Timer scoped to this activation."""
        return self.context.scheduler.call_later(delay, callback, token=self.scope.token)

    def query(self, name: str) -> bool:
        """Evaluate a boolean query collaborator synchronously."""
        probe = self.context.collaborators.queries.get(name)
        if probe is None:
            raise CollaboratorUnavailableError(f"Query '{name}' is not registered", collaborator=name)
        try:
            return bool(probe())
        except CollaboratorUnavailableError:
            raise
        except Exception as e:
            raise CollaboratorUnavailableError(
                f"Query '{name}' could not be evaluated: {e}",
                collaborator=name
            ) from e

    # ------------------------------------------------------------------
    # Exit choreography
    # ------------------------------------------------------------------

    def exit_steps(self, target: "PhaseNode", decision: ExitDecision) -> list[ChoreographyStep]:
        """Ordered exit sequence, excluding the final hand-off to target."""
        steps = [ChoreographyStep("fade_out_ui", self._fade_out_ui)]
        steps.extend(self.exit_side_effects(target, decision))

        if not self.skipped:
            write = self.pending_flag_write()
            if write is not None:
                key, value = write
                steps.append(immediate_step("persist_flag", partial(self._persist_flag, key, value)))

        return steps

    def exit_side_effects(self, target: "PhaseNode", decision: ExitDecision) -> list[ChoreographyStep]:
        """Declared side effects for leaving towards target."""
        if self.ar_backed and not target.ar_backed:
            return [
                self.scene_fade_step(self.context.colors.leave_ar),
                self.stop_session_step(),
            ]
        return []

    def pending_flag_write(self) -> Optional[tuple[str, int]]:
        return None

    def scene_fade_step(self, color: str) -> ChoreographyStep:
        def fade(token: CancellationToken) -> Completion:
            completion = Completion("fade_scene_out")
            self.context.collaborators.fader.fade_scene_out(
                color,
                self.context.timing.scene_fade_duration,
                completion.resolve,
                token=token
            )
            return completion

        return ChoreographyStep("fade_scene_out", fade)

    def stop_session_step(self) -> ChoreographyStep:
        return immediate_step("stop_session", self.context.collaborators.session.stop)

    def _fade_out_ui(self, token: CancellationToken) -> Completion:
        completion = Completion("fade_out_ui")
        if self.view is None or not self.view.visible:
            completion.resolve()
            return completion

        self.context.collaborators.fader.fade_out(
            self.view,
            self.fade_duration,
            completion.resolve,
            token=token
        )
        return completion

    def _persist_flag(self, key: str, value: int) -> None:
        self.context.flags.write(key, value)
        self.logger.info("Persisted flag", key=key, value=value)
