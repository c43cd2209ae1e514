"""Street map phase: pick a location, then head for localization."""

from typing import Any

from ..errors import ConfigurationError
from ..flow.node import PhaseNode
from ..signals.names import Signals
from .warning import WarningPhase


class StreetMapPhase(PhaseNode):
    """
    Non-AR map screen. Advancing goes through the safety warning the first
    time in a process, and straight to localization afterwards.
    """

    kind = "street_map"
    branches = ("warning", "localization")

    def __init__(self, identity: str, warning_key: str = "warning", **kwargs: Any):
        super().__init__(identity, **kwargs)
        self.warning_key = warning_key

    def on_bind(self) -> None:
        # The routing decision reads the once-key the warning phase marks
        warning = self.successors["warning"]
        if not isinstance(warning, WarningPhase) or warning.once_key != self.warning_key:
            raise ConfigurationError(
                f"Phase {self.identity} warning branch must lead to a warning phase "
                f"with once_key {self.warning_key!r}",
                context={
                    "phase": self.identity,
                    "target": warning.identity,
                    "warning_key": self.warning_key,
                    "once_key": getattr(warning, "once_key", None),
                }
            )

    def on_enter(self) -> None:
        fader = self.context.collaborators.fader
        if not fader.is_scene_faded_in:
            fader.fade_scene_in(
                self.context.colors.leave_ar,
                self.context.timing.scene_fade_duration,
                token=self.scope.token
            )

        self.subscribe(Signals.ADVANCE_TO_LOCALIZATION, self.on_advance)

    def on_advance(self, payload: Any) -> None:
        if self.context.process.has_run(self.warning_key):
            self.propose_exit("localization", reason=Signals.ADVANCE_TO_LOCALIZATION)
        else:
            self.propose_exit("warning", reason=Signals.ADVANCE_TO_LOCALIZATION)
