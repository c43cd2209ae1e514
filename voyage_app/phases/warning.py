"""Safety warning shown at most once per process."""

from typing import Any

from ..flow.node import PhaseNode
from ..signals.names import Signals

OK_CONTROL = "ok"


class WarningPhase(PhaseNode):
    """AR safety warning. Shared by every experience of one process."""

    kind = "warning"
    branches = ("next",)
    requires_view = True

    def __init__(self, identity: str, once_key: str = "warning", **kwargs: Any):
        super().__init__(identity, **kwargs)
        self.once_key = once_key

    def required_controls(self) -> tuple[str, ...]:
        return (OK_CONTROL,)

    def should_skip(self) -> bool:
        return self.context.process.has_run(self.once_key)

    def on_enter(self) -> None:
        self.context.process.mark_run(self.once_key)
        self.subscribe_branch(Signals.WARNING_OK, "next")
