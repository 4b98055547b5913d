"""Editor-facing event definitions."""

from .events import (
    CursorIdle,
    DiagnosticsChanged,
    DocumentEntered,
    EditorShutdown,
    Event,
    EventBus,
    OverlayDismissed,
    PanelStateChanged,
    VisualPropertiesChanged,
)

__all__ = [
    "CursorIdle",
    "DiagnosticsChanged",
    "DocumentEntered",
    "EditorShutdown",
    "Event",
    "EventBus",
    "OverlayDismissed",
    "PanelStateChanged",
    "VisualPropertiesChanged",
]
