"""Panel refresh engine: formatting, collection, layout, state and scheduling."""

from .collector import Collector, FormattedItem, collect_items, effective_threshold
from .controller import PanelController
from .formatter import format_diagnostic, severity_glyph
from .layout import PanelLayout, compute_layout, display_width, place_overlay
from .navigation import NavigationHandler
from .scheduler import DebounceScheduler
from .state import DiagnosticsPanel, PanelSnapshot, PanelState, RefreshOutcome

__all__ = [
    "Collector",
    "DebounceScheduler",
    "DiagnosticsPanel",
    "FormattedItem",
    "NavigationHandler",
    "PanelController",
    "PanelLayout",
    "PanelSnapshot",
    "PanelState",
    "RefreshOutcome",
    "collect_items",
    "compute_layout",
    "display_width",
    "effective_threshold",
    "format_diagnostic",
    "place_overlay",
    "severity_glyph",
]
