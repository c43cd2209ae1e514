"""
AR content phase: the localized experience itself.

Several independent signals compete for the exit: the continue button,
the back button, a debug relocalization override, the destabilization
event raised by the positioning system, and an optional shortcut query
evaluated once at entry. The first accepted proposal wins.
"""

from typing import Any, Optional

from ..errors import CollaboratorUnavailableError
from ..flow.choreographer import ChoreographyStep
from ..flow.models import ExitDecision
from ..flow.node import PhaseNode
from ..signals.names import Signals


class ArContentPhase(PhaseNode):
    """Localized AR content with competing exit branches."""

    kind = "ar_content"
    branches = ("next",)
    optional_branches = ("street_map", "relocalize", "destabilized", "shortcut")
    ar_backed = True

    def __init__(
        self,
        identity: str,
        shortcut_query: Optional[str] = None,
        auto_advance_after: Optional[float] = None,
        **kwargs: Any
    ):
        super().__init__(identity, **kwargs)
        self.shortcut_query = shortcut_query
        self.auto_advance_after = auto_advance_after

    def on_bind(self) -> None:
        if self.shortcut_query is not None and not self.has_branch("shortcut"):
            self.logger.warning("Shortcut query configured without a shortcut branch", query=self.shortcut_query)

    def on_enter(self) -> None:
        fader = self.context.collaborators.fader
        if not fader.is_scene_faded_in:
            fader.fade_scene_in(self.context.colors.stay_ar, 0.0)

        self.subscribe_branch(Signals.CONTINUE, "next")
        if self.has_branch("street_map"):
            self.subscribe_branch(Signals.BACK, "street_map")
        if self.has_branch("relocalize"):
            self.subscribe_branch(Signals.DEBUG_RELOCALIZE, "relocalize")
        if self.has_branch("destabilized"):
            self.subscribe_branch(Signals.LOCALIZATION_DESTABILIZED, "destabilized")

        if self.shortcut_query is not None and self.has_branch("shortcut"):
            self.check_shortcut()

    def check_shortcut(self) -> None:
        try:
            take_shortcut = self.query(self.shortcut_query)
        except CollaboratorUnavailableError as e:
            self.logger.warning("Shortcut query unavailable, staying on content", error=str(e))
            return

        if take_shortcut:
            self.propose_exit("shortcut", reason=f"query:{self.shortcut_query}")

    def on_running(self) -> None:
        if self.auto_advance_after is not None:
            self.after(self.auto_advance_after, lambda: self.propose_exit("next", reason="auto_advance"))

    def exit_side_effects(self, target: PhaseNode, decision: ExitDecision) -> list[ChoreographyStep]:
        colors = self.context.colors
        if not target.ar_backed:
            return [self.scene_fade_step(colors.leave_ar), self.stop_session_step()]
        if decision.branch == "relocalize":
            return [self.scene_fade_step(colors.leave_ar)]
        return [self.scene_fade_step(colors.stay_ar)]
