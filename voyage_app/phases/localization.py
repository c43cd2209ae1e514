"""Localization phase: wait for the positioning system to localize the device."""

from typing import Any, Optional

from ..flow.node import PhaseNode
from ..signals.names import Signals


class LocalizationPhase(PhaseNode):
    """Starts the immersive session and waits for a localization result."""

    kind = "localization"
    branches = ("success", "failure")
    optional_branches = ("street_map",)
    ar_backed = True

    def __init__(self, identity: str, timeout: Optional[float] = None, **kwargs: Any):
        super().__init__(identity, **kwargs)
        self.timeout = timeout

    def on_enter(self) -> None:
        session = self.context.collaborators.session
        if not session.running:
            session.start()
        session.set_camera_active(True)

        self.subscribe_branch(Signals.LOCALIZED, "success")
        self.subscribe_branch(Signals.LOCALIZATION_FAILED, "failure")
        if self.has_branch("street_map"):
            self.subscribe_branch(Signals.BACK, "street_map")

    def on_running(self) -> None:
        if self.timeout is not None:
            self.after(self.timeout, self.on_timeout)

    def on_timeout(self) -> None:
        self.logger.warning("Localization timed out", timeout=self.timeout)
        self.propose_exit("failure", reason="timeout")
