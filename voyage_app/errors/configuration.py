"""
Configuration error classifications for flow graph wiring.

These exceptions describe problems in the static wiring of an experience:
missing successors, missing view elements, unknown phase kinds. They are
fatal and are raised at graph assembly rather than at transition time.
"""

from typing import Any, Dict, Optional

from .recovery import UnrecoverableError


class ConfigurationError(UnrecoverableError):
    """Base class for fatal flow configuration problems."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class MissingSuccessorError(ConfigurationError):
    """A reachable branch has no successor, or names an unknown phase."""

    def __init__(self, message: str, phase: Optional[str] = None,
                 branch: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.phase = phase
        self.branch = branch


class MissingElementError(ConfigurationError):
    """A required view or view control is missing for a phase."""

    def __init__(self, message: str, phase: Optional[str] = None,
                 element: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.phase = phase
        self.element = element


class UnknownPhaseKindError(ConfigurationError):
    """Experience definition names a phase kind that is not registered."""

    def __init__(self, message: str, kind: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.kind = kind


class InvalidGraphError(ConfigurationError):
    """Structural graph problem: no start phase, duplicate ids, self loops."""
