"""Tests for flow graph assembly and the exactly-one-active invariant."""

import pytest

from voyage_app.errors import (
    ConfigurationError,
    InvalidGraphError,
    MissingElementError,
    MissingSuccessorError,
    TransitionError,
    UnknownPhaseKindError,
)
from voyage_app.flow.graph import FlowGraph
from voyage_app.flow.models import ActivationState
from voyage_app.phases import MessagePhase, TerminalPhase
from voyage_app.signals import Signals


class TestGraphAssembly:
    """Test that wiring problems fail at assembly, not at transition time."""

    def test_missing_required_successor(self, harness):
        """A required branch without a target is fatal."""
        with pytest.raises(MissingSuccessorError) as exc_info:
            harness.build([
                {"id": "intro", "kind": "message", "view": "message_gui"},
                {"id": "done", "kind": "terminal"},
            ])

        assert exc_info.value.phase == "intro"
        assert exc_info.value.branch == "next"

    def test_null_successor(self, harness):
        """An explicitly null successor is as fatal as a missing one."""
        with pytest.raises(MissingSuccessorError):
            harness.build([
                {"id": "intro", "kind": "message", "view": "message_gui", "successors": {"next": None}},
                {"id": "done", "kind": "terminal"},
            ])

    def test_unknown_successor(self, harness):
        """Successors must name phases of the same graph."""
        with pytest.raises(MissingSuccessorError):
            harness.build([
                {"id": "intro", "kind": "message", "view": "message_gui", "successors": {"next": "nowhere"}},
                {"id": "done", "kind": "terminal"},
            ])

    def test_optional_branch_with_unknown_target(self, harness):
        """Optional branches are validated like required ones once wired."""
        with pytest.raises(MissingSuccessorError):
            harness.build([
                {"id": "intro", "kind": "message", "view": "message_gui",
                 "successors": {"next": "done", "back": "nowhere"}},
                {"id": "done", "kind": "terminal"},
            ])

    def test_self_loop(self, harness):
        """A phase cannot be its own successor."""
        with pytest.raises(InvalidGraphError):
            harness.build([
                {"id": "intro", "kind": "message", "view": "message_gui", "successors": {"next": "intro"}},
            ])

    def test_undeclared_branch(self, harness):
        """Branch names must be ones the phase kind can take."""
        with pytest.raises(ConfigurationError):
            harness.build([
                {"id": "intro", "kind": "message", "view": "message_gui",
                 "successors": {"next": "done", "sideways": "done"}},
                {"id": "done", "kind": "terminal"},
            ])

    def test_unknown_kind(self, harness):
        """Unregistered kinds are rejected."""
        with pytest.raises(UnknownPhaseKindError) as exc_info:
            harness.build([{"id": "intro", "kind": "cutscene"}])

        assert exc_info.value.kind == "cutscene"

    def test_unexpected_parameter(self, harness):
        """Parameters a kind does not accept are configuration errors."""
        with pytest.raises(ConfigurationError):
            harness.build([
                {"id": "intro", "kind": "message", "view": "message_gui", "colour": "red",
                 "successors": {"next": "done"}},
                {"id": "done", "kind": "terminal"},
            ])

    def test_unregistered_view(self, harness):
        """Views must exist in the registry."""
        with pytest.raises(MissingElementError) as exc_info:
            harness.build([
                {"id": "intro", "kind": "message", "view": "missing_gui", "successors": {"next": "done"}},
                {"id": "done", "kind": "terminal"},
            ])

        assert exc_info.value.element == "missing_gui"

    def test_view_required_by_kind(self, harness):
        """Kinds that present a GUI must be given a view."""
        with pytest.raises(MissingElementError):
            harness.build([
                {"id": "warning", "kind": "warning", "successors": {"next": "done"}},
                {"id": "done", "kind": "terminal"},
            ])

    def test_missing_control(self, harness):
        """Required controls must exist on the view."""
        with pytest.raises(MissingElementError) as exc_info:
            harness.build([
                {"id": "privacy", "kind": "legal_doc", "view": "after_gui", "successors": {"next": "done"}},
                {"id": "done", "kind": "terminal"},
            ])

        assert exc_info.value.element == "accept"

    def test_missing_start(self, harness):
        """The start phase must be defined."""
        with pytest.raises(InvalidGraphError):
            harness.build([{"id": "done", "kind": "terminal"}], start="intro")

    def test_duplicate_ids(self, context):
        """Identities are unique within a graph."""
        graph = FlowGraph("test", context, start="done")
        graph.add(TerminalPhase("done"))

        with pytest.raises(InvalidGraphError):
            graph.add(TerminalPhase("done"))

    def test_start_twice(self, harness):
        """A graph runs once."""
        graph = harness.start([{"id": "done", "kind": "terminal"}])

        with pytest.raises(TransitionError):
            graph.start()

    def test_manual_assembly(self, context):
        """Graphs can be wired in code as well as from definitions."""
        graph = FlowGraph("manual", context, start="intro")
        graph.add(MessagePhase("intro", successors={"next": "done"}, view="message_gui"))
        graph.add(TerminalPhase("done"))

        graph.assemble()

        assert graph["intro"].successors["next"] is graph["done"]
        assert graph["intro"].view is context.collaborators.views["message_gui"]


class TestGraphExecution:
    """Test graph-level invariants while a flow runs."""

    @pytest.fixture
    def loop_flow(self):
        return [
            {"id": "first", "kind": "message", "view": "message_gui",
             "successors": {"next": "second", "back": "done"}},
            {"id": "second", "kind": "message", "view": "after_gui", "successors": {"next": "first"}},
            {"id": "done", "kind": "terminal"},
        ]

    def test_exactly_one_active_between_frames(self, harness, loop_flow):
        """At every frame boundary exactly one phase is not inactive."""
        graph = harness.start(loop_flow)

        for round_trip in range(3):
            for _ in range(6):
                harness.frames(1)
                assert len(graph.active_nodes()) == 1
                assert graph.active_nodes()[0] is graph.active
            harness.publish(Signals.CONTINUE)

        assert graph["first"].activation_count >= 2

    def test_graph_may_reenter_an_earlier_phase(self, harness, loop_flow):
        """Cycles are allowed; each visit is a fresh activation."""
        graph = harness.start(loop_flow)
        harness.settle(0.5)

        harness.publish(Signals.CONTINUE)
        harness.settle(1.0)
        harness.publish(Signals.CONTINUE)
        harness.settle(1.0)

        assert harness.active == "first"
        assert graph["first"].activation_count == 2
        assert graph["first"].exit_decision is None
        assert graph.path() == ["first", "second", "first"]

    def test_history_records_transitions(self, harness, loop_flow):
        """Each hand-off is recorded with its branch and reason."""
        graph = harness.start(loop_flow)
        harness.settle(0.5)

        harness.publish(Signals.BACK)
        harness.settle(1.0)

        assert len(graph.history) == 1
        record = graph.history[0]
        assert (record.from_phase, record.to_phase, record.branch) == ("first", "done", "back")
        assert record.reason == Signals.BACK
        assert record.skipped is False
        assert record.finished_at > record.started_at

    def test_terminal_finishes_experience(self, harness, loop_flow, exits):
        """Reaching a terminal phase exits the experience once."""
        graph = harness.start(loop_flow)
        harness.settle(0.5)

        harness.publish(Signals.BACK)
        harness.settle(1.0)
        harness.settle(1.0)

        assert graph.finished
        assert graph.outcome == "done"
        assert exits == [("done", "done")]

    def test_experience_exit_sees_completed_handoff(self, harness, context, loop_flow):
        """The exit callback runs once the terminal phase is the only active phase."""
        seen = []

        def on_exit(phase, outcome):
            graph = phase.graph
            seen.append((graph.active is phase, [node.identity for node in graph.active_nodes()],
                         graph["first"].state))

        context.on_experience_exit = on_exit
        harness.start(loop_flow)
        harness.settle(0.5)

        harness.publish(Signals.BACK)
        harness.settle(1.0)

        assert seen == [(True, ["done"], ActivationState.INACTIVE)]

    def test_stop_from_experience_exit(self, harness, context, loop_flow):
        """A host stopping the flow from the exit callback leaves nothing running."""
        context.on_experience_exit = lambda phase, outcome: phase.graph.stop()
        graph = harness.start(loop_flow)
        harness.settle(0.5)

        harness.publish(Signals.BACK)
        harness.settle(1.0)

        assert graph.finished
        assert graph.active_nodes() == []
        assert graph["done"].state is ActivationState.INACTIVE
        assert [record.to_phase for record in graph.history] == ["done"]

    def test_stop_abandons_in_flight_exit(self, harness, loop_flow):
        """Stopping mid-choreography never activates the target."""
        graph = harness.start(loop_flow)
        harness.settle(0.5)

        harness.publish(Signals.CONTINUE)
        harness.frames(1)
        assert graph["first"].state is ActivationState.EXITING

        graph.stop()
        harness.settle(1.0)

        assert graph["second"].state is ActivationState.INACTIVE
        assert graph["first"].state is ActivationState.INACTIVE
        assert graph.active_nodes() == []
        assert graph.history == []
