"""
Localization destabilized phase.

Entered when the positioning system loses its lock. A proximity query
evaluated once at entry decides where the user is sent back to: straight
to localization when still close enough, otherwise the street map. The
matching body text is shown and the OK button takes the chosen branch.
"""

from typing import Any, Optional

from ..errors import CollaboratorUnavailableError, MissingElementError
from ..flow.choreographer import ChoreographyStep
from ..flow.models import ExitDecision
from ..flow.node import PhaseNode
from ..signals.names import Signals

BODY_GROUP = "body"
RETURN_TO_LOCALIZATION = "return_to_localization"
RETURN_TO_STREET_MAP = "return_to_street_map"


class DestabilizedPhase(PhaseNode):
    """Tells the user localization was lost and routes them back."""

    kind = "destabilized"
    branches = ("localization", "street_map")
    requires_view = True
    ar_backed = True

    def __init__(self, identity: str, proximity_query: str = "close_enough_to_localize", **kwargs: Any):
        super().__init__(identity, **kwargs)
        self.proximity_query = proximity_query
        self.chosen_branch: Optional[str] = None

    def on_bind(self) -> None:
        for variant in (RETURN_TO_LOCALIZATION, RETURN_TO_STREET_MAP):
            if not self.view.has_variant(BODY_GROUP, variant):
                raise MissingElementError(
                    f"Phase {self.identity} view is missing body variant '{variant}'",
                    phase=self.identity,
                    element=f"{BODY_GROUP}.{variant}"
                )

    @property
    def fade_duration(self) -> float:
        if self._fade_duration is not None:
            return self._fade_duration
        return self.context.timing.destabilized_fade_duration

    def on_enter(self) -> None:
        try:
            close_enough = self.query(self.proximity_query)
        except CollaboratorUnavailableError as e:
            self.logger.warning("Proximity unavailable, returning to street map", error=str(e))
            close_enough = False

        if close_enough:
            self.chosen_branch = "localization"
            self.view.show_variant(BODY_GROUP, RETURN_TO_LOCALIZATION)
        else:
            self.chosen_branch = "street_map"
            self.view.show_variant(BODY_GROUP, RETURN_TO_STREET_MAP)

        self.logger.info("Recovery branch chosen", branch=self.chosen_branch, close_enough=close_enough)
        self.subscribe(Signals.CONTINUE, self.on_ok)

        self.after(self.context.timing.scene_check_delay, self.check_scene_faded_in)

    def check_scene_faded_in(self) -> None:
        fader = self.context.collaborators.fader
        if not fader.is_scene_faded_in:
            self.logger.debug("Scene still faded out, fading in")
            fader.fade_scene_in(
                self.context.colors.stay_ar,
                self.context.timing.scene_fade_duration,
                initial_delay=self.context.timing.scene_fade_duration,
                token=self.scope.token
            )

    def on_ok(self, payload: Any) -> None:
        self.propose_exit(self.chosen_branch, reason="ok")

    def exit_side_effects(self, target: PhaseNode, decision: ExitDecision) -> list[ChoreographyStep]:
        if not target.ar_backed:
            return [self.stop_session_step()]
        return []
