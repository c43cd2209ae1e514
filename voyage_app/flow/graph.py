"""
Flow graph: the static wiring of an experience's phases.

The graph owns every PhaseNode instance and is authoritative for which
phase is active. Exits are carried out by the TransitionChoreographer;
the graph records each completed hand-off.
"""

from typing import Any, Optional

from ..errors import ConfigurationError, InvalidGraphError, TransitionError, UnknownPhaseKindError
from ..logging.config import get_flow_logger, log_phase_transition
from .choreographer import TransitionChoreographer
from .models import ActivationState, ExitDecision, FlowContext, TransitionRecord
from .node import PhaseNode
from .scheduler import CancellationToken

flow_logger = get_flow_logger(__name__)


class FlowGraph:
    """Directed graph of phases with exactly one active phase at a time."""

    def __init__(self, name: str, context: FlowContext, start: Optional[str] = None):
        self.name = name
        self.context = context
        self.start_id = start
        self.nodes: dict[str, PhaseNode] = {}
        self.active: Optional[PhaseNode] = None
        self.history: list[TransitionRecord] = []
        self.choreographer = TransitionChoreographer()
        self.assembled = False
        self.started = False
        self.finished = False
        self.outcome: Optional[str] = None
        self._transition_token: Optional[CancellationToken] = None
        self._handing_off = False
        self._pending_finish: Optional[tuple[PhaseNode, Optional[str]]] = None
        self.logger = flow_logger.bind(graph=name)

    def add(self, node: PhaseNode) -> PhaseNode:
        if self.assembled:
            raise InvalidGraphError(
                f"Cannot add {node.identity} to assembled graph {self.name}",
                context={"graph": self.name, "phase": node.identity}
            )
        if node.identity in self.nodes:
            raise InvalidGraphError(
                f"Duplicate phase id {node.identity} in graph {self.name}",
                context={"graph": self.name, "phase": node.identity}
            )
        self.nodes[node.identity] = node
        return node

    def __getitem__(self, identity: str) -> PhaseNode:
        return self.nodes[identity]

    def __contains__(self, identity: str) -> bool:
        return identity in self.nodes

    def assemble(self) -> "FlowGraph":
        """Bind every phase; all wiring errors surface here."""
        if self.start_id is None or self.start_id not in self.nodes:
            raise InvalidGraphError(
                f"Graph {self.name} start phase {self.start_id!r} is not defined",
                context={"graph": self.name, "start": self.start_id}
            )

        for node in self.nodes.values():
            node.bind(self)

        self.assembled = True
        self.logger.info("Flow graph assembled", phases=len(self.nodes), start=self.start_id)
        return self

    def start(self) -> PhaseNode:
        if not self.assembled:
            self.assemble()
        if self.started:
            raise TransitionError(
                f"Graph {self.name} has already been started",
                current_state="started",
                attempted_transition="start"
            )

        self.started = True
        self.active = self.nodes[self.start_id]
        self.logger.info("Flow graph started", start=self.start_id)
        self.active.activate()
        return self.active

    def tick(self) -> None:
        """One frame: the active phase evaluates its exit."""
        if self.active is None or self.finished:
            return
        self.active.tick()

    def begin_transition(self, source: PhaseNode, target: PhaseNode, decision: ExitDecision) -> None:
        if source is not self.active:
            raise TransitionError(
                f"Phase {source.identity} is not the active phase of {self.name}",
                current_state=source.state.value,
                attempted_transition=ActivationState.EXITING.value
            )
        if self.choreographer.busy:
            raise TransitionError(
                f"Graph {self.name} is already transitioning",
                current_state=ActivationState.EXITING.value,
                attempted_transition=ActivationState.EXITING.value
            )

        started_at = self.context.scheduler.now
        self._transition_token = CancellationToken(f"{source.identity}->{target.identity}")
        self.choreographer.run(
            source,
            target,
            decision,
            source.exit_steps(target, decision),
            lambda: self._handoff(source, target, decision, started_at),
            self._transition_token
        )

    def _handoff(self, source: PhaseNode, target: PhaseNode, decision: ExitDecision, started_at: float) -> None:
        # Successors are never the source itself, so the target is inactive
        self._handing_off = True
        try:
            target.activate()
            source.deactivate()
            self.active = target
        finally:
            self._handing_off = False

        record = TransitionRecord(
            from_phase=source.identity,
            to_phase=target.identity,
            branch=decision.branch,
            reason=decision.reason,
            skipped=source.skipped,
            started_at=started_at,
            finished_at=self.context.scheduler.now,
        )
        self.history.append(record)

        log_phase_transition(
            self.logger,
            graph=self.name,
            from_phase=source.identity,
            to_phase=target.identity,
            branch=decision.branch,
            context={
                "reason": decision.reason,
                "skipped": source.skipped,
                "duration": round(record.finished_at - record.started_at, 4),
            }
        )

        if self._pending_finish is not None:
            phase, outcome = self._pending_finish
            self._pending_finish = None
            self.finish(phase, outcome)

    def finish(self, phase: PhaseNode, outcome: Optional[str] = None) -> None:
        """Exit the experience from a terminal phase."""
        if self.finished:
            return
        if self._handing_off:
            # Reported once the hand-off to phase has completed
            self._pending_finish = (phase, outcome)
            return
        self.finished = True
        self.outcome = outcome
        self.logger.info("Experience finished", phase=phase.identity, outcome=outcome)

        if self.context.on_experience_exit is not None:
            self.context.on_experience_exit(phase, outcome)

    def stop(self) -> None:
        """Abandon any in-flight choreography and deactivate the active phase."""
        if self._transition_token is not None:
            self._transition_token.cancel()
        if self.active is not None:
            self.active.deactivate()
        self.logger.info("Flow graph stopped", active=self.active.identity if self.active else None)

    def active_nodes(self) -> list[PhaseNode]:
        return [node for node in self.nodes.values() if node.state is not ActivationState.INACTIVE]

    def path(self) -> list[str]:
        """Phase ids in activation order."""
        if not self.started:
            return []
        return [self.start_id] + [record.to_phase for record in self.history]


class FlowGraphBuilder:
    """Builds a FlowGraph from an experience definition and a registry of phase kinds."""

    def __init__(self, kinds: dict[str, type]):
        self.kinds = dict(kinds)

    def build(self, definition: dict[str, Any], context: FlowContext) -> FlowGraph:
        name = definition.get("name", "experience")
        nodes = definition.get("nodes")
        if not isinstance(nodes, list) or not nodes:
            raise InvalidGraphError(
                f"Experience {name} defines no phases",
                context={"experience": name}
            )

        graph = FlowGraph(name, context, start=definition.get("start"))
        for node_def in nodes:
            graph.add(self.create_node(node_def))
        return graph.assemble()

    def create_node(self, node_def: dict[str, Any]) -> PhaseNode:
        params = dict(node_def)
        identity = params.pop("id", None)
        kind = params.pop("kind", None)

        if not identity:
            raise InvalidGraphError("Phase definition has no id", context={"definition": node_def})

        node_class = self.kinds.get(kind)
        if node_class is None:
            raise UnknownPhaseKindError(
                f"Phase {identity} has unknown kind {kind!r}",
                kind=kind,
                context={"phase": identity, "known": sorted(self.kinds)}
            )

        try:
            return node_class(identity, **params)
        except TypeError as e:
            raise ConfigurationError(
                f"Invalid parameters for phase {identity} ({kind}): {e}",
                context={"phase": identity, "kind": kind, "params": sorted(params)}
            ) from e
