"""The panel service object: wires editor events, user commands and lifecycle."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from ..core.severity import SIGN_GROUPS, Severity
from ..host.protocols import (
    DiagnosticsProvider,
    EditingMode,
    HostEditor,
    SignSpec,
    VisualProperties,
    guarded,
)
from ..host.timers import TimerFactory
from ..services.settings import PanelSettings
from ..ui.events import (
    CursorIdle,
    DiagnosticsChanged,
    DocumentEntered,
    EditorShutdown,
    EventBus,
    OverlayDismissed,
    PanelStateChanged,
    Subscription,
    VisualPropertiesChanged,
)
from .collector import Collector
from .formatter import severity_glyph
from .navigation import NavigationHandler
from .scheduler import DebounceScheduler
from .state import DiagnosticsPanel, PanelState, RefreshOutcome

LOGGER = logging.getLogger(__name__)

OVERLAY_ACTIVATE_KEY = "<CR>"
OVERLAY_CLOSE_KEYS: tuple[str, ...] = ("q", "<Esc>")


class PanelController:
    """Singleton service owning the panel, its scheduler and its subscriptions.

    Build one per editor session, call :meth:`install` once the host is
    ready and :meth:`shutdown` (or publish :class:`EditorShutdown`) on exit.
    The event bus keeps only weak references to the controller's handlers,
    so the host must hold on to the controller for the session.
    """

    def __init__(
        self,
        settings: PanelSettings,
        host: HostEditor,
        provider: DiagnosticsProvider,
        event_bus: EventBus,
        timer_factory: TimerFactory,
    ) -> None:
        self._settings = settings
        self._host = host
        self._provider = provider
        self._bus = event_bus
        self._collector = Collector(settings, host, provider)
        self._panel = DiagnosticsPanel(settings, host, self._collector, key_bindings=self._overlay_bindings)
        self._scheduler = DebounceScheduler(timer_factory, settings.debounce_ms, self._refresh)
        self._navigation = NavigationHandler(settings, host, provider, self._panel, close_panel=self.close)
        self._subscriptions: list[Subscription] = []
        self._installed = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def settings(self) -> PanelSettings:
        return self._settings

    @property
    def panel(self) -> DiagnosticsPanel:
        return self._panel

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    @property
    def installed(self) -> bool:
        return self._installed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def install(self) -> None:
        if self._installed:
            return
        if self._settings.show_on_diag_changed:
            self._subscribe(DiagnosticsChanged, self._on_diagnostics_changed)
        if self._settings.show_on_bufenter:
            self._subscribe(DocumentEntered, self._on_document_entered)
        if self._settings.show_on_cursorhold:
            self._subscribe(CursorIdle, self._on_cursor_idle)
        self._subscribe(OverlayDismissed, self._on_overlay_dismissed)
        self._subscribe(VisualPropertiesChanged, self._on_visual_properties_changed)
        self._subscribe(EditorShutdown, self._on_editor_shutdown)

        if self._settings.keymap:
            registered = guarded("register_keymap", self._host.register_keymap, self._settings.keymap, self.toggle)
            if not registered.ok:
                LOGGER.warning("Toggle keymap %s could not be registered: %s", self._settings.keymap, registered.reason)
        self.apply_visual_properties()
        self._installed = True
        LOGGER.debug("Diagnostics panel installed (%d subscription(s))", len(self._subscriptions))

    def shutdown(self) -> None:
        self._scheduler.cancel()
        self.close()
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
        self._installed = False

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def toggle(self) -> RefreshOutcome | None:
        """Close when open; otherwise refresh the active document right away."""

        if self._panel.is_open():
            self.close()
            return None
        document_id = guarded("current_document", self._host.current_document).value
        if not document_id:
            return None
        self._scheduler.cancel()
        return self._refresh(document_id)

    def close(self) -> None:
        self._scheduler.cancel()
        if self._panel.close():
            self._publish_state()

    def activate(self, row: int | None = None) -> bool:
        return self._navigation.activate(row)

    def request_refresh(self, document_id: str) -> None:
        self._scheduler.request(document_id)

    def visual_properties(self) -> VisualProperties:
        signs = {
            severity: SignSpec(text=severity_glyph(severity, self._settings), highlight=SIGN_GROUPS[severity])
            for severity in Severity
        }
        return VisualProperties(
            highlights=dict(self._settings.highlight),
            signs=signs,
            border=self._settings.border,
            winblend=self._settings.winblend,
        )

    def apply_visual_properties(self) -> None:
        result = guarded("apply_visual_properties", self._host.apply_visual_properties, self.visual_properties())
        if not result.ok:
            LOGGER.debug("Visual properties not applied: %s", result.reason)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _on_diagnostics_changed(self, event: DiagnosticsChanged) -> None:
        if not self._settings.live_typing and self._collector.current_mode() is EditingMode.INSERT:
            return
        self.request_refresh(event.document_id)

    def _on_document_entered(self, event: DocumentEntered) -> None:
        self.request_refresh(event.document_id)

    def _on_cursor_idle(self, event: CursorIdle) -> None:
        if not self._panel.is_open():
            return
        document_id = event.document_id or guarded("current_document", self._host.current_document).value
        if document_id:
            self.request_refresh(document_id)

    def _on_overlay_dismissed(self, event: OverlayDismissed) -> None:
        if self._panel.handle_overlay_dismissed(event.handle_id):
            self._scheduler.cancel()
            self._publish_state()

    def _on_visual_properties_changed(self, event: VisualPropertiesChanged) -> None:
        LOGGER.debug("Reapplying visual properties (%s)", event.reason or "host request")
        self.apply_visual_properties()

    def _on_editor_shutdown(self, event: EditorShutdown) -> None:
        del event
        self.shutdown()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _refresh(self, document_id: str) -> RefreshOutcome:
        outcome = self._panel.refresh(document_id)
        LOGGER.debug("Refresh of %s: %s", document_id, outcome.value)
        if outcome in (RefreshOutcome.OPENED, RefreshOutcome.UPDATED, RefreshOutcome.CLOSED):
            self._publish_state()
        return outcome

    def _publish_state(self) -> None:
        state = self._panel.state
        self._bus.publish(
            PanelStateChanged(
                state=state.value,
                document_id=self._panel.document_id if state is PanelState.OPEN else None,
                item_count=len(self._panel.items) if state is PanelState.OPEN else 0,
            )
        )

    def _subscribe(self, event_type: type, handler: Callable) -> None:
        self._subscriptions.append(self._bus.subscribe(event_type, handler))

    def _overlay_bindings(self) -> Mapping[str, Callable[[], None]]:
        bindings: dict[str, Callable[[], None]] = {OVERLAY_ACTIVATE_KEY: self.activate}
        for key in OVERLAY_CLOSE_KEYS:
            bindings[key] = self.close
        return bindings


__all__ = ["OVERLAY_ACTIVATE_KEY", "OVERLAY_CLOSE_KEYS", "PanelController"]
