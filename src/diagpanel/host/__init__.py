"""Host editor and diagnostics provider boundaries.

The Qt host lives in :mod:`diagpanel.host.qt_host` and is imported on
demand so the core stays importable without a display.
"""

from .protocols import (
    DiagnosticsProvider,
    EditingMode,
    HostEditor,
    HostResult,
    OverlayHandle,
    OverlaySpec,
    Releasable,
    SignSpec,
    Viewport,
    VisualProperties,
    guarded,
    release_handle,
)
from .providers import InMemoryDiagnosticsProvider
from .timers import AsyncioTimer, AsyncioTimerFactory, TimerFactory

__all__ = [
    "AsyncioTimer",
    "AsyncioTimerFactory",
    "DiagnosticsProvider",
    "EditingMode",
    "HostEditor",
    "HostResult",
    "InMemoryDiagnosticsProvider",
    "OverlayHandle",
    "OverlaySpec",
    "Releasable",
    "SignSpec",
    "TimerFactory",
    "Viewport",
    "VisualProperties",
    "guarded",
    "release_handle",
]
