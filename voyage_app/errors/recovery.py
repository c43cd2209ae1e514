"""
Recovery strategy classifications for error handling.

These mixins help categorize errors by their recovery characteristics
and guide the error handling strategy. Nothing in the flow engine is
retried automatically: errors are either defaulted locally or fatal.
"""

from typing import Optional


class UnrecoverableError(Exception):
    """Mixin for errors that require implementer or operator intervention."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message)
        self.recoverable = False


class GracefulDegradationError(Exception):
    """Mixin for errors that allow continued operation with a default outcome."""

    def __init__(self, message: str, degraded_functionality: Optional[str] = None,
                 fallback_strategy: Optional[str] = None, **kwargs):
        super().__init__(message)
        self.degraded_functionality = degraded_functionality
        self.fallback_strategy = fallback_strategy
        self.allows_degradation = True


class FlagReadError(GracefulDegradationError):
    """Persisted flag could not be read or held corrupt data; treated as not completed."""

    def __init__(self, message: str, key: Optional[str] = None,
                 raw_value: Optional[object] = None, **kwargs):
        super().__init__(
            message,
            degraded_functionality="persisted_flag",
            fallback_strategy="default_to_zero",
            **kwargs
        )
        self.key = key
        self.raw_value = raw_value


class CollaboratorUnavailableError(GracefulDegradationError):
    """An external query collaborator could not be evaluated."""

    def __init__(self, message: str, collaborator: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            degraded_functionality=collaborator,
            fallback_strategy="default_branch",
            **kwargs
        )
        self.collaborator = collaborator
