"""Terminal phase: leaves the experience."""

from typing import Any, Optional

from ..flow.node import PhaseNode


class TerminalPhase(PhaseNode):
    """Marks the flow finished and hands control back to the host application."""

    kind = "terminal"

    def __init__(self, identity: str, outcome: Optional[str] = None, **kwargs: Any):
        super().__init__(identity, **kwargs)
        self.outcome = outcome or identity

    def on_running(self) -> None:
        self.graph.finish(self, self.outcome)
