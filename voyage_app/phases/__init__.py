"""Concrete phase kinds, keyed by the `kind` used in experience files."""

from .ar_content import ArContentPhase
from .destabilized import DestabilizedPhase
from .legal_doc import LegalDocPhase
from .localization import LocalizationPhase
from .message import MessagePhase
from .street_map import StreetMapPhase
from .terminal import TerminalPhase
from .warning import WarningPhase

PHASE_KINDS = {
    phase.kind: phase
    for phase in (
        LegalDocPhase,
        WarningPhase,
        MessagePhase,
        StreetMapPhase,
        LocalizationPhase,
        ArContentPhase,
        DestabilizedPhase,
        TerminalPhase,
    )
}

__all__ = [
    "PHASE_KINDS",
    "ArContentPhase",
    "DestabilizedPhase",
    "LegalDocPhase",
    "LocalizationPhase",
    "MessagePhase",
    "StreetMapPhase",
    "TerminalPhase",
    "WarningPhase",
]
