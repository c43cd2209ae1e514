"""Tests for the structured log records emitted by the flow engine."""

from unittest.mock import Mock, patch

from voyage_app.logging.config import (
    SubsystemDefaulter,
    configure_logging,
    log_branch_decision,
    log_phase_transition,
)


class TestStandardRecords:
    """Test the branch decision and phase transition records."""

    def test_accepted_branch_decision(self):
        """Accepted proposals are logged at info with their record type."""
        logger = Mock()
        bound = logger.bind.return_value

        log_branch_decision(logger, phase="content", branch="next", accepted=True, reason="ui.continue")

        logger.bind.assert_called_once_with(
            phase="content",
            branch="next",
            branch_result="ACCEPTED",
            reason="ui.continue",
            event_type="branch_decision"
        )
        bound.info.assert_called_once_with("Branch accepted")
        bound.warning.assert_not_called()

    def test_ignored_branch_decision(self):
        """Ignored proposals are warnings and carry their context."""
        logger = Mock()
        bound = logger.bind.return_value
        with_context = bound.bind.return_value

        log_branch_decision(logger, phase="content", branch="street_map", accepted=False,
                            reason="ui.back", context={"decided": "next"})

        assert logger.bind.call_args.kwargs["branch_result"] == "IGNORED"
        bound.bind.assert_called_once_with(context={"decided": "next"})
        with_context.warning.assert_called_once_with("Branch ignored")

    def test_phase_transition(self):
        """Hand-offs are logged with the graph, both phases and the branch."""
        logger = Mock()

        log_phase_transition(logger, graph="vps", from_phase="localization", to_phase="content",
                             branch="success")

        logger.bind.assert_called_once_with(
            graph="vps",
            from_phase="localization",
            to_phase="content",
            branch="success",
            event_type="phase_transition"
        )
        logger.bind.return_value.info.assert_called_once_with("Phase transition")


class TestSubsystemDefaulter:
    """Test the subsystem processor."""

    def test_stamps_missing_subsystem(self):
        """Records without a subsystem get the default."""
        event_dict = SubsystemDefaulter("engine")(None, "info", {"event": "Flow runner initialized"})

        assert event_dict["subsystem"] == "engine"

    def test_keeps_bound_subsystem(self):
        """Flow and choreography loggers keep their own subsystem."""
        event_dict = SubsystemDefaulter("engine")(None, "info", {"event": "Step finished",
                                                                 "subsystem": "choreography"})

        assert event_dict["subsystem"] == "choreography"

    def test_configure_logging_installs_defaulter(self):
        """The configured processor chain includes the subsystem processor."""
        with patch("voyage_app.logging.config.structlog.configure") as configure:
            configure_logging(level="DEBUG", format_json=True, default_subsystem="demo")

        processors = configure.call_args.kwargs["processors"]
        defaulters = [p for p in processors if isinstance(p, SubsystemDefaulter)]
        assert [d.subsystem for d in defaulters] == ["demo"]
