"""
Legal document acceptance phase.

Blocks the user until a specific legal document has been accepted. Once
accepted the acceptance is persisted under the document's pref name, and
every later activation (in this or any later process) skips straight to
the next phase without presenting anything.
"""

from typing import Any, Optional

from ..errors import MissingSuccessorError
from ..flow.node import PhaseNode
from ..signals.names import Signals

CONTINUE_CONTROL = "continue"
ACCEPT_CONTROL = "accept"


class LegalDocPhase(PhaseNode):
    """Prompts the user to read and accept one legal document."""

    kind = "legal_doc"
    branches = ("next",)
    requires_view = True

    def __init__(
        self,
        identity: str,
        pref_name: Optional[str] = None,
        requires_user_review: bool = True,
        preceding: Optional[list[str]] = None,
        **kwargs: Any
    ):
        super().__init__(identity, **kwargs)
        self.pref_name = pref_name or identity
        self.requires_user_review = requires_user_review
        self.preceding = list(preceding or [])
        self.accepted = False

    def required_controls(self) -> tuple[str, ...]:
        if self.requires_user_review:
            return (CONTINUE_CONTROL, ACCEPT_CONTROL)
        return (CONTINUE_CONTROL,)

    def on_bind(self) -> None:
        for identity in self.preceding:
            if identity not in self.graph.nodes:
                raise MissingSuccessorError(
                    f"Phase {self.identity} lists unknown preceding phase {identity!r}",
                    phase=self.identity,
                    branch="preceding"
                )

    def should_skip(self) -> bool:
        return self.context.flags.is_set(self.pref_name)

    def entry_delay(self) -> float:
        # Only the first visible screen of the app waits before fading in
        first_visible = all(self.graph.nodes[identity].skipped for identity in self.preceding)
        return self.context.timing.initial_delay if first_visible else 0.0

    def on_enter(self) -> None:
        # Continue stays visible but disabled until the document is accepted
        self.view.set_control_enabled(CONTINUE_CONTROL, False)

        if self.requires_user_review:
            self.accepted = self.view.is_checked(ACCEPT_CONTROL)
            self.subscribe(Signals.ACCEPT_CHECKBOX, self.on_accept_checkbox)
        else:
            self.accepted = True

        self.subscribe(Signals.CONTINUE, self.on_continue)

    def on_tick(self) -> None:
        enabled = self.view.is_control_enabled(CONTINUE_CONTROL)
        if not enabled and self.accepted:
            self.view.set_control_enabled(CONTINUE_CONTROL, True)
            self.logger.debug("Continue enabled")
        elif enabled and not self.accepted:
            self.view.set_control_enabled(CONTINUE_CONTROL, False)
            self.logger.debug("Continue disabled")

    def on_accept_checkbox(self, payload: Any) -> None:
        if isinstance(payload, bool):
            checked = payload
        elif isinstance(payload, dict) and isinstance(payload.get("checked"), bool):
            checked = payload["checked"]
        else:
            checked = not self.accepted

        self.accepted = checked
        self.view.set_checked(ACCEPT_CONTROL, checked)
        self.logger.debug("Accept checkbox toggled", checked=checked)

    def on_continue(self, payload: Any) -> None:
        if not self.view.is_control_enabled(CONTINUE_CONTROL):
            self.logger.debug("Continue ignored while disabled")
            return
        self.propose_exit("next", reason=Signals.CONTINUE)

    def pending_flag_write(self) -> Optional[tuple[str, int]]:
        return (self.pref_name, 1)
