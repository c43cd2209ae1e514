"""Tests for phase node lifecycle, subscription hygiene and branch resolution."""

import pytest

from voyage_app.errors import CollaboratorUnavailableError, MissingSuccessorError, TransitionError
from voyage_app.flow.models import ActivationState
from voyage_app.flow.node import ExitResolver
from voyage_app.signals import Signals


@pytest.fixture
def message_flow():
    return [
        {"id": "intro", "kind": "message", "view": "message_gui",
         "successors": {"next": "outro", "back": "done"}},
        {"id": "outro", "kind": "message", "view": "after_gui", "successors": {"next": "done"}},
        {"id": "done", "kind": "terminal"},
    ]


class TestExitResolver:
    """Test first-accepted-wins branch resolution."""

    def test_first_proposal_wins(self):
        """Later proposals in the same cycle are ignored."""
        resolver = ExitResolver("content")

        assert resolver.propose("relocalize", reason=Signals.DEBUG_RELOCALIZE) is True
        assert resolver.propose("destabilized", reason=Signals.LOCALIZATION_DESTABILIZED) is False

        assert resolver.decision.branch == "relocalize"
        assert [proposal.branch for proposal in resolver.ignored] == ["destabilized"]

    def test_latched_decision_is_immutable(self):
        """Proposals after the latch are recorded as ignored."""
        resolver = ExitResolver("content")
        resolver.propose("next", reason=Signals.CONTINUE)

        decision = resolver.latch()
        assert resolver.propose("street_map", reason=Signals.BACK) is False

        assert resolver.decision is decision
        assert not resolver.pending

    def test_latch_without_decision_raises(self):
        """There is nothing to hand over before a proposal."""
        with pytest.raises(TransitionError):
            ExitResolver("content").latch()


class TestPhaseLifecycle:
    """Test activate/tick/deactivate state handling."""

    def test_activation_enters_then_runs_after_fade(self, harness, message_flow):
        """A presenting phase is Entering until its fade-in completes."""
        graph = harness.start(message_flow)
        intro = graph["intro"]

        assert intro.state is ActivationState.ENTERING
        assert harness.view("message_gui").visible

        harness.frames(2)
        assert intro.state is ActivationState.RUNNING
        assert harness.view("message_gui").alpha == 1.0

    def test_activating_an_active_phase_raises(self, harness, message_flow):
        """Only inactive phases can be activated."""
        graph = harness.start(message_flow)

        with pytest.raises(TransitionError):
            graph["intro"].activate()

    def test_deactivate_is_idempotent(self, harness, message_flow):
        """Deactivating twice is harmless."""
        graph = harness.start(message_flow)
        intro = graph["intro"]

        intro.deactivate()
        intro.deactivate()

        assert intro.state is ActivationState.INACTIVE

    def test_tick_on_inactive_phase_is_noop(self, harness, message_flow):
        """An inactive phase never begins an exit."""
        graph = harness.build(message_flow)
        outro = graph["outro"]

        outro.tick()

        assert outro.state is ActivationState.INACTIVE

    def test_exit_waits_for_tick(self, harness, message_flow):
        """A signal only sets the exit; the next tick begins it."""
        graph = harness.start(message_flow)
        harness.frames(2)

        harness.publish(Signals.CONTINUE)
        assert graph["intro"].state is ActivationState.RUNNING
        assert graph["intro"].exit_target is graph["outro"]

        harness.frames(1)
        assert graph["intro"].state is ActivationState.EXITING

    def test_stale_fade_completion_after_deactivate(self, harness, message_flow):
        """A fade-in cut short by deactivation does not resurrect the phase."""
        graph = harness.start(message_flow)
        intro = graph["intro"]

        intro.deactivate()
        harness.frames(3)

        assert intro.state is ActivationState.INACTIVE
        assert not harness.view("message_gui").visible

    def test_proposing_unwired_branch_raises(self, harness):
        """Branches without a successor are configuration errors."""
        graph = harness.start([
            {"id": "intro", "kind": "message", "view": "message_gui", "successors": {"next": "done"}},
            {"id": "done", "kind": "terminal"},
        ])

        with pytest.raises(MissingSuccessorError):
            graph["intro"].propose_exit("back", reason="test")

    def test_back_signal_ignored_without_back_branch(self, harness):
        """Optional branches are only subscribed when wired."""
        graph = harness.start([
            {"id": "intro", "kind": "message", "view": "message_gui", "successors": {"next": "done"}},
            {"id": "done", "kind": "terminal"},
        ])

        assert harness.publish(Signals.BACK) == 0
        assert graph["intro"].exit_decision is None

    def test_proposal_to_inactive_phase_is_rejected(self, harness, message_flow):
        """Inactive phases have no resolver to write to."""
        graph = harness.build(message_flow)

        assert graph["outro"].propose_exit("next", reason="stale") is False


class TestSubscriptionHygiene:
    """Test that deactivation releases every subscription."""

    def test_no_subscriptions_after_deactivate(self, harness, bus, legal_flow):
        """A deactivated phase leaves nothing subscribed."""
        graph = harness.start(legal_flow)
        assert bus.subscriber_count(owner="privacy") == 2

        graph["privacy"].deactivate()

        assert bus.subscriber_count() == 0

    def test_repeated_cycles_do_not_accumulate(self, harness, bus, legal_flow):
        """Re-activating the same instance never duplicates deliveries."""
        graph = harness.start(legal_flow)
        privacy = graph["privacy"]

        for _ in range(5):
            privacy.deactivate()
            assert bus.subscriber_count() == 0
            privacy.activate()

        assert bus.subscriber_count(signal=Signals.CONTINUE) == 1
        assert bus.subscriber_count(signal=Signals.ACCEPT_CHECKBOX) == 1
        assert privacy.activation_count == 6

    def test_whole_flow_leaves_only_active_subscriptions(self, harness, bus, legal_flow):
        """After each hand-off only the active phase holds subscriptions."""
        graph = harness.start(legal_flow)
        harness.settle(1.0)

        harness.publish(Signals.ACCEPT_CHECKBOX, True)
        harness.frames(1)
        harness.publish(Signals.CONTINUE)
        harness.settle(1.0)

        assert harness.active == "terms"
        assert bus.subscriber_count(owner="privacy") == 0
        assert bus.subscriber_count() == bus.subscriber_count(owner="terms")


class TestQueries:
    """Test synchronous query collaborators."""

    def test_missing_query_raises(self, harness, message_flow):
        """Unregistered queries are reported as unavailable."""
        graph = harness.start(message_flow)

        with pytest.raises(CollaboratorUnavailableError):
            graph["intro"].query("close_enough_to_localize")

    def test_failing_query_is_wrapped(self, harness, message_flow):
        """Exceptions raised by a query become CollaboratorUnavailableError."""
        def broken():
            raise RuntimeError("no location fix")

        harness.context.collaborators.queries["close_enough_to_localize"] = broken
        graph = harness.start(message_flow)

        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            graph["intro"].query("close_enough_to_localize")

        assert exc_info.value.collaborator == "close_enough_to_localize"
