"""Interfaces the panel consumes from the host editor and diagnostics provider.

Every call the panel makes across these interfaces goes through
:func:`guarded`, which turns an exception into a failed :class:`HostResult`.
The refresh and teardown paths inspect those results and degrade to "panel
not shown" rather than letting a host failure escape into the editor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Mapping, Protocol, Sequence, TypeVar, runtime_checkable

from ..core.severity import Severity
from ..theme.models import HighlightStyle

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


# ----------------------------------------------------------------------
# Results
# ----------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class HostResult(Generic[T]):
    """Outcome of one host/provider call."""

    ok: bool
    value: T | None = None
    reason: str = ""

    @classmethod
    def success(cls, value: T | None = None) -> HostResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> HostResult[T]:
        return cls(ok=False, reason=reason)

    def value_or(self, default: T) -> T:
        if self.ok and self.value is not None:
            return self.value
        return default


def guarded(label: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> HostResult[T]:
    """Invoke ``func`` and capture any exception as a failed result."""

    try:
        value = func(*args, **kwargs)
    except Exception as exc:
        LOGGER.debug("Host call %s failed: %s", label, exc, exc_info=True)
        return HostResult.failure(f"{label}: {exc.__class__.__name__}: {exc}")
    return HostResult.success(value)


# ----------------------------------------------------------------------
# Value types exchanged with the host
# ----------------------------------------------------------------------
class EditingMode(Enum):
    NORMAL = "normal"
    INSERT = "insert"

    @classmethod
    def coerce(cls, value: Any) -> EditingMode:
        """Map host mode values (including Vim mode strings) onto the two modes."""

        if isinstance(value, EditingMode):
            return value
        if isinstance(value, Mapping):
            value = value.get("mode")
        if isinstance(value, str):
            text = value.strip().lower()
            if text in {"i", "ic", "ix", "insert"}:
                return cls.INSERT
        return cls.NORMAL


@dataclass(slots=True, frozen=True)
class Viewport:
    """Editor viewport size in character cells."""

    rows: int
    columns: int


@dataclass(slots=True, frozen=True)
class OverlaySpec:
    """Everything the host needs to draw or redraw the panel overlay.

    ``row``/``col`` locate the overlay's top-left corner in cells; ``width``
    counts the text area plus one padding column on each side.
    """

    lines: tuple[str, ...]
    highlights: tuple[str, ...]
    row: int
    col: int
    width: int
    height: int
    border: str = "rounded"
    winblend: int = 0
    zindex: int = 0


@dataclass(slots=True, frozen=True)
class SignSpec:
    text: str
    highlight: str


@dataclass(slots=True, frozen=True)
class VisualProperties:
    """Highlight styles and sign glyphs the host applies to its surfaces."""

    highlights: Mapping[str, HighlightStyle] = field(default_factory=dict)
    signs: Mapping[Severity, SignSpec] = field(default_factory=dict)
    border: str = "rounded"
    winblend: int = 0


# ----------------------------------------------------------------------
# Collaborator protocols
# ----------------------------------------------------------------------
@runtime_checkable
class DiagnosticsProvider(Protocol):
    """External subsystem that owns the diagnostics of every document."""

    def get_diagnostics(self, document_id: str) -> Sequence[Any]:
        ...


class HostEditor(Protocol):
    """Window/buffer/overlay primitives of the host editor."""

    def current_document(self) -> str | None:
        ...

    def current_mode(self) -> Any:
        ...

    def viewport(self) -> Viewport:
        ...

    def create_overlay(self, spec: OverlaySpec) -> int:
        ...

    def update_overlay(self, overlay_id: int, spec: OverlaySpec) -> None:
        ...

    def destroy_overlay(self, overlay_id: int) -> None:
        ...

    def overlay_is_valid(self, overlay_id: int) -> bool:
        ...

    def overlay_cursor_row(self, overlay_id: int) -> int:
        ...

    def bind_overlay_keys(self, overlay_id: int, bindings: Mapping[str, Callable[[], None]]) -> None:
        ...

    def focus_document(self, document_id: str) -> None:
        ...

    def set_cursor(self, document_id: str, line: int, column: int) -> None:
        ...

    def open_detail_popup(
        self,
        document_id: str,
        line: int,
        column: int,
        messages: Sequence[str],
        options: Mapping[str, Any],
    ) -> None:
        ...

    def register_keymap(self, sequence: str, callback: Callable[[], None]) -> None:
        ...

    def apply_visual_properties(self, properties: VisualProperties) -> None:
        ...


# ----------------------------------------------------------------------
# Releasable handles
# ----------------------------------------------------------------------
@runtime_checkable
class Releasable(Protocol):
    """Capability shared by timer and overlay handles."""

    def is_valid(self) -> bool:
        ...

    def stop(self) -> None:
        ...

    def release(self) -> None:
        ...


class OverlayHandle:
    """The panel's grip on one host overlay."""

    __slots__ = ("_host", "overlay_id", "_released")

    def __init__(self, host: HostEditor, overlay_id: int) -> None:
        self._host = host
        self.overlay_id = overlay_id
        self._released = False

    def is_valid(self) -> bool:
        if self._released:
            return False
        result = guarded("overlay_is_valid", self._host.overlay_is_valid, self.overlay_id)
        return bool(result.ok and result.value)

    def stop(self) -> None:
        """Overlays run nothing in the background; present for :class:`Releasable`."""

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        if not guarded("overlay_is_valid", self._host.overlay_is_valid, self.overlay_id).value:
            return
        result = guarded("destroy_overlay", self._host.destroy_overlay, self.overlay_id)
        if not result.ok:
            LOGGER.debug("Overlay %s already gone: %s", self.overlay_id, result.reason)

    def forget(self) -> None:
        """Mark released without calling the host (it already destroyed the overlay)."""

        self._released = True

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"OverlayHandle(id={self.overlay_id}, {state})"


def release_handle(handle: Releasable | None) -> None:
    """Stop and release ``handle``; safe on ``None`` and on released handles."""

    if handle is None:
        return
    stopped = guarded("handle.stop", handle.stop)
    if not stopped.ok:
        LOGGER.debug("Ignoring stop failure: %s", stopped.reason)
    released = guarded("handle.release", handle.release)
    if not released.ok:
        LOGGER.debug("Ignoring release failure: %s", released.reason)


__all__ = [
    "DiagnosticsProvider",
    "EditingMode",
    "HostEditor",
    "HostResult",
    "OverlayHandle",
    "OverlaySpec",
    "Releasable",
    "SignSpec",
    "Viewport",
    "VisualProperties",
    "guarded",
    "release_handle",
]
