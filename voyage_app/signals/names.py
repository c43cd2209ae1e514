"""Signal names published by user-facing controls and collaborator subsystems."""


class Signals:
    """Well-known signal names. Each user-facing control maps to exactly one."""

    # User-facing controls
    CONTINUE = "ui.continue"
    BACK = "ui.back"
    ACCEPT_CHECKBOX = "ui.accept_checkbox"
    WARNING_OK = "ui.warning_ok"

    # Localization subsystem
    ADVANCE_TO_LOCALIZATION = "map.advance_to_localization"
    LOCALIZED = "vps.localized"
    LOCALIZATION_FAILED = "vps.localization_failed"
    LOCALIZATION_DESTABILIZED = "vps.localization_destabilized"

    # Debug menu overrides
    DEBUG_RELOCALIZE = "debug.relocalize"
