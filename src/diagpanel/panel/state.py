"""Lifecycle of the single diagnostics overlay.

:class:`DiagnosticsPanel` is the only writer of the overlay handle, the
displayed snapshot and the item list used for navigation. It runs one
refresh cycle at a time on the host's event-loop thread:

    collect -> layout -> create/update overlay -> commit snapshot

and keeps two invariants: the panel never shows more than one document,
and the overlay is never visible without a snapshot describing it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from ..core.severity import highlight_group
from ..host.protocols import (
    HostEditor,
    OverlayHandle,
    OverlaySpec,
    Viewport,
    guarded,
    release_handle,
)
from ..services.settings import PanelSettings
from .collector import Collector, FormattedItem
from .layout import Fingerprint, PanelLayout, compute_layout, place_overlay

LOGGER = logging.getLogger(__name__)

_FALLBACK_VIEWPORT = Viewport(rows=24, columns=80)


class PanelState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class RefreshOutcome(Enum):
    OPENED = "opened"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    CLOSED = "closed"
    NOOP = "noop"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class PanelSnapshot:
    """What the overlay currently displays."""

    document_id: str
    items: tuple[FormattedItem, ...]
    lines: tuple[str, ...]
    fingerprint: Fingerprint
    width: int
    height: int


class DiagnosticsPanel:
    """Owns the overlay and drives the Closed/Open state machine."""

    def __init__(
        self,
        settings: PanelSettings,
        host: HostEditor,
        collector: Collector,
        *,
        key_bindings: Callable[[], Mapping[str, Callable[[], None]]] | None = None,
    ) -> None:
        self._settings = settings
        self._host = host
        self._collector = collector
        self._key_bindings = key_bindings
        self._overlay: OverlayHandle | None = None
        self._snapshot: PanelSnapshot | None = None
        self._closing = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def state(self) -> PanelState:
        return PanelState.OPEN if self.is_open() else PanelState.CLOSED

    @property
    def snapshot(self) -> PanelSnapshot | None:
        return self._snapshot

    @property
    def overlay(self) -> OverlayHandle | None:
        return self._overlay

    @property
    def document_id(self) -> str | None:
        return self._snapshot.document_id if self._snapshot is not None else None

    @property
    def items(self) -> tuple[FormattedItem, ...]:
        return self._snapshot.items if self._snapshot is not None else ()

    def is_open(self) -> bool:
        """True while a live overlay and its snapshot both exist."""

        if self._overlay is None or self._snapshot is None:
            return False
        return self._overlay.is_valid()

    def item_at(self, row: int) -> FormattedItem | None:
        """Item shown on one-based ``row``, or ``None`` for stale rows."""

        items = self.items
        if 1 <= row <= len(items):
            return items[row - 1]
        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def refresh(self, document_id: str) -> RefreshOutcome:
        """Run one refresh cycle for ``document_id`` against live diagnostics."""

        items = self._collector.collect(document_id)
        if not items:
            if self.document_id == document_id:
                LOGGER.debug("No diagnostics left for %s; closing panel", document_id)
                self.close()
                return RefreshOutcome.CLOSED
            return RefreshOutcome.NOOP

        live = self.is_open()
        if not live and self._overlay is not None:
            # The host invalidated the overlay behind our back.
            self._discard_overlay()

        viewport = guarded("viewport", self._host.viewport).value_or(_FALLBACK_VIEWPORT)
        current = self._snapshot
        layout = compute_layout(
            [item.text for item in items],
            viewport,
            self._settings,
            current=current.fingerprint if current is not None else None,
            same_document=current is not None and current.document_id == document_id,
        )
        if live and not layout.changed:
            return RefreshOutcome.UNCHANGED

        spec = self._overlay_spec(items, layout, viewport)
        if live and self._overlay is not None:
            updated = guarded("update_overlay", self._host.update_overlay, self._overlay.overlay_id, spec)
            if updated.ok:
                self._commit(document_id, items, layout)
                return RefreshOutcome.UPDATED
            LOGGER.debug("Overlay update rejected (%s); recreating", updated.reason)
            self._discard_overlay()

        created = guarded("create_overlay", self._host.create_overlay, spec)
        if not created.ok or created.value is None:
            LOGGER.info("Diagnostics panel could not be shown: %s", created.reason or "no overlay id")
            self._snapshot = None
            return RefreshOutcome.FAILED
        self._overlay = OverlayHandle(self._host, created.value)
        self._commit(document_id, items, layout)
        self._bind_keys()
        return RefreshOutcome.OPENED

    def close(self) -> bool:
        """Tear down the overlay and forget the snapshot; returns whether anything closed."""

        if self._closing:
            return False
        if self._overlay is None and self._snapshot is None:
            return False
        self._closing = True
        try:
            overlay = self._overlay
            self._overlay = None
            self._snapshot = None
            release_handle(overlay)
        finally:
            self._closing = False
        LOGGER.debug("Diagnostics panel closed")
        return True

    def handle_overlay_dismissed(self, overlay_id: int) -> bool:
        """The host destroyed ``overlay_id`` itself; drop our state without touching it."""

        overlay = self._overlay
        if overlay is None or overlay.overlay_id != overlay_id:
            return False
        overlay.forget()
        self._overlay = None
        self._snapshot = None
        LOGGER.debug("Overlay %s dismissed by host", overlay_id)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _commit(self, document_id: str, items: list[FormattedItem], layout: PanelLayout) -> None:
        self._snapshot = PanelSnapshot(
            document_id=document_id,
            items=tuple(items),
            lines=layout.lines,
            fingerprint=layout.fingerprint,
            width=layout.width,
            height=layout.height,
        )

    def _discard_overlay(self) -> None:
        overlay = self._overlay
        self._overlay = None
        self._snapshot = None
        release_handle(overlay)

    def _overlay_spec(self, items: list[FormattedItem], layout: PanelLayout, viewport: Viewport) -> OverlaySpec:
        row, col = place_overlay(layout.width, layout.height, viewport, self._settings)
        return OverlaySpec(
            lines=layout.lines,
            highlights=tuple(highlight_group(item.severity) for item in items),
            row=row,
            col=col,
            width=layout.width + 2,
            height=layout.height,
            border=self._settings.border,
            winblend=self._settings.winblend,
            zindex=self._settings.zindex,
        )

    def _bind_keys(self) -> None:
        if not self._settings.buffer_keymaps or self._key_bindings is None or self._overlay is None:
            return
        result = guarded("bind_overlay_keys", self._host.bind_overlay_keys, self._overlay.overlay_id, self._key_bindings())
        if not result.ok:
            LOGGER.debug("Overlay key bindings unavailable: %s", result.reason)


__all__ = ["DiagnosticsPanel", "PanelSnapshot", "PanelState", "RefreshOutcome"]
