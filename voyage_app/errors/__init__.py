"""
Error classification system for the phase flow engine.

Errors are grouped by recovery characteristics: configuration errors are
fatal and surface at graph assembly, system failures halt the affected
component, and degradation errors are recovered locally with a
deterministic default.
"""

from .configuration import (
    ConfigurationError,
    MissingSuccessorError,
    MissingElementError,
    UnknownPhaseKindError,
    InvalidGraphError,
)
from .system_failures import (
    SystemFailureError,
    TransitionError,
    PersistenceError,
)
from .recovery import (
    UnrecoverableError,
    GracefulDegradationError,
    FlagReadError,
    CollaboratorUnavailableError,
)

__all__ = [
    # Configuration Errors
    "ConfigurationError",
    "MissingSuccessorError",
    "MissingElementError",
    "UnknownPhaseKindError",
    "InvalidGraphError",
    # System Failures
    "SystemFailureError",
    "TransitionError",
    "PersistenceError",
    # Recovery Categories
    "UnrecoverableError",
    "GracefulDegradationError",
    "FlagReadError",
    "CollaboratorUnavailableError",
]
