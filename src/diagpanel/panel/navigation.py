"""Jump from a panel row back to the diagnostic's source position."""

from __future__ import annotations

import logging
from typing import Callable

from ..host.protocols import DiagnosticsProvider, HostEditor, guarded
from ..core.records import DiagnosticRecord
from ..services.settings import PanelSettings
from .collector import FormattedItem
from .state import DiagnosticsPanel

LOGGER = logging.getLogger(__name__)


class NavigationHandler:
    """Maps a one-based panel row to a document position.

    Activation closes the panel before moving the cursor so the overlay can
    never keep pointing at a position the jump is about to change.
    """

    def __init__(
        self,
        settings: PanelSettings,
        host: HostEditor,
        provider: DiagnosticsProvider,
        panel: DiagnosticsPanel,
        close_panel: Callable[[], object],
    ) -> None:
        self._settings = settings
        self._host = host
        self._provider = provider
        self._panel = panel
        self._close_panel = close_panel

    def activate(self, row: int | None = None) -> bool:
        overlay = self._panel.overlay
        if overlay is None or not self._panel.is_open():
            return False
        if row is None:
            cursor = guarded("overlay_cursor_row", self._host.overlay_cursor_row, overlay.overlay_id)
            if not cursor.ok or cursor.value is None:
                return False
            row = int(cursor.value)
        item = self._panel.item_at(row)
        if item is None:
            LOGGER.debug("Row %s has no diagnostic behind it; ignoring", row)
            return False
        self._close_panel()
        self._jump(item)
        return True

    def _jump(self, item: FormattedItem) -> None:
        focused = guarded("focus_document", self._host.focus_document, item.document_id)
        if not focused.ok:
            LOGGER.debug("Cannot focus %s: %s", item.document_id, focused.reason)
            return
        guarded("set_cursor", self._host.set_cursor, item.document_id, item.line, item.column)
        guarded(
            "open_detail_popup",
            self._host.open_detail_popup,
            item.document_id,
            item.line,
            item.column,
            self._line_messages(item),
            dict(self._settings.float_opts),
        )

    def _line_messages(self, item: FormattedItem) -> list[str]:
        """Every message reported on the item's line, the activated one first."""

        result = guarded("get_diagnostics", self._provider.get_diagnostics, item.document_id)
        records = [DiagnosticRecord.from_value(raw) for raw in (result.value or ())] if result.ok else []
        show_source = self._settings.float_opts.get("source") == "always"
        messages = [_describe(item.record, show_source)]
        for record in records:
            if record.line != item.line:
                continue
            text = _describe(record, show_source)
            if text not in messages:
                messages.append(text)
        return messages


def _describe(record: DiagnosticRecord, show_source: bool) -> str:
    if show_source and record.source:
        return f"{record.source}: {record.message}"
    return record.message


__all__ = ["NavigationHandler"]
