"""Live diagnostics overlay panel for text editors."""

from .core import DiagnosticRecord, Severity
from .panel import PanelController, RefreshOutcome
from .services.settings import PanelSettings, SettingsError, SettingsStore
from .ui.events import EventBus

__version__ = "0.3.0"

__all__ = [
    "DiagnosticRecord",
    "EventBus",
    "PanelController",
    "PanelSettings",
    "RefreshOutcome",
    "SettingsError",
    "SettingsStore",
    "Severity",
    "__version__",
]
