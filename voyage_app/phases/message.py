"""Plain message screens: instructions, success and failure notices."""

from typing import Any, Optional

from ..flow.node import PhaseNode
from ..signals.names import Signals


class MessagePhase(PhaseNode):
    """Shows a GUI until continue (or back) is pressed."""

    kind = "message"
    branches = ("next",)
    optional_branches = ("back",)

    def __init__(self, identity: str, auto_advance_after: Optional[float] = None, **kwargs: Any):
        super().__init__(identity, **kwargs)
        self.auto_advance_after = auto_advance_after

    def on_enter(self) -> None:
        self.subscribe_branch(Signals.CONTINUE, "next")
        if self.has_branch("back"):
            self.subscribe_branch(Signals.BACK, "back")

    def on_running(self) -> None:
        if self.auto_advance_after is not None:
            self.after(self.auto_advance_after, lambda: self.propose_exit("next", reason="auto_advance"))
