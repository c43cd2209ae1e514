"""
Centralized logging configuration for the flow engine.

This module provides standardized logging configuration using structlog
for all components. Phase lifecycle, branch decisions and choreography
steps are all logged through loggers obtained here so that a flow run can
be reconstructed from its audit trail.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


class SubsystemDefaulter:
    """Structlog processor that stamps a subsystem on records that lack one."""

    def __init__(self, subsystem: str):
        self.subsystem = subsystem

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("subsystem", self.subsystem)
        return event_dict


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None,
    default_subsystem: str = "engine"
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
        default_subsystem: Subsystem stamped on records whose logger bound none
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        SubsystemDefaulter(default_subsystem),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_flow_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound for phase lifecycle and branching events.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for phase lifecycle logging
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="flow",
        audit_trail=True
    )


def get_transition_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound for exit choreography.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for choreography steps
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="choreography",
        audit_trail=True
    )


def log_branch_decision(
    logger: FilteringBoundLogger,
    phase: str,
    branch: str,
    accepted: bool,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a branch proposal and whether the resolver honored it.

    Args:
        logger: Structlog logger instance
        phase: Identity of the phase resolving its exit
        branch: Branch that was proposed
        accepted: Whether the proposal became the exit target
        reason: Signal or rule that produced the proposal
        context: Additional context data
    """
    bound_logger = logger.bind(
        phase=phase,
        branch=branch,
        branch_result="ACCEPTED" if accepted else "IGNORED",
        reason=reason,
        event_type="branch_decision"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if accepted:
        bound_logger.info("Branch accepted")
    else:
        bound_logger.warning("Branch ignored")


def log_phase_transition(
    logger: FilteringBoundLogger,
    graph: str,
    from_phase: str,
    to_phase: str,
    branch: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a completed hand-off between two phases.

    Args:
        logger: Structlog logger instance
        graph: Name of the flow graph (experience)
        from_phase: Phase that exited
        to_phase: Phase that was activated
        branch: Branch taken out of from_phase
        context: Additional context data
    """
    bound_logger = logger.bind(
        graph=graph,
        from_phase=from_phase,
        to_phase=to_phase,
        branch=branch,
        event_type="phase_transition"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Phase transition")
