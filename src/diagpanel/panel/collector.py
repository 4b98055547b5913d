"""Severity filtering, deduplication and formatting of a document's diagnostics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from ..core.records import DiagnosticRecord
from ..core.severity import Severity
from ..host.protocols import DiagnosticsProvider, EditingMode, HostEditor, guarded
from ..services.settings import PanelSettings
from .formatter import format_diagnostic

LOGGER = logging.getLogger(__name__)

DEDUPE_MESSAGE_CHARS = 120
LIVE_TYPING_THRESHOLD = Severity.WARN


@dataclass(slots=True, frozen=True)
class FormattedItem:
    """One panel row plus the source position it points back to."""

    text: str
    document_id: str
    line: int
    column: int
    severity: Severity | None
    record: DiagnosticRecord


def effective_threshold(settings: PanelSettings, mode: EditingMode) -> Severity | None:
    """Threshold in force for one pass.

    While live typing is on and the user is inserting, ``WARN`` replaces the
    static threshold outright, looser or stricter.
    """

    if settings.live_typing and mode is EditingMode.INSERT:
        return LIVE_TYPING_THRESHOLD
    return settings.severity_threshold


def dedupe_key(record: DiagnosticRecord) -> tuple[int, int, str]:
    line, column = record.position
    return (line, column, record.message[:DEDUPE_MESSAGE_CHARS])


def passes_threshold(record: DiagnosticRecord, threshold: Severity | None) -> bool:
    if threshold is None:
        return True
    return record.severity is not None and record.severity <= threshold


def collect_items(
    document_id: str,
    records: Iterable[Any] | None,
    settings: PanelSettings,
    *,
    mode: EditingMode = EditingMode.NORMAL,
) -> list[FormattedItem] | None:
    """Filter, dedupe and format ``records``; ``None`` means "no diagnostics".

    Provider order is preserved and the first of several duplicates wins,
    so a severity-sorted provider keeps the most severe copy.
    """

    if not records:
        return None
    threshold = effective_threshold(settings, mode)
    seen: set[tuple[int, int, str]] = set()
    items: list[FormattedItem] = []
    for raw in records:
        record = DiagnosticRecord.from_value(raw)
        if not passes_threshold(record, threshold):
            continue
        key = dedupe_key(record)
        if key in seen:
            continue
        seen.add(key)
        text, line, column = format_diagnostic(record, settings)
        items.append(
            FormattedItem(
                text=text,
                document_id=document_id,
                line=line,
                column=column,
                severity=record.severity,
                record=record,
            )
        )
    return items or None


class Collector:
    """Reads live diagnostics and the editing mode, then runs :func:`collect_items`."""

    def __init__(self, settings: PanelSettings, host: HostEditor, provider: DiagnosticsProvider) -> None:
        self._settings = settings
        self._host = host
        self._provider = provider

    def current_mode(self) -> EditingMode:
        result = guarded("current_mode", self._host.current_mode)
        if not result.ok:
            return EditingMode.NORMAL
        return EditingMode.coerce(result.value)

    def records(self, document_id: str) -> list[Any]:
        result = guarded("get_diagnostics", self._provider.get_diagnostics, document_id)
        if not result.ok:
            LOGGER.debug("Treating %s as diagnostic-free: %s", document_id, result.reason)
            return []
        try:
            return list(result.value or ())
        except TypeError:
            LOGGER.debug("Ignoring non-iterable diagnostics payload for %s", document_id)
            return []

    def collect(self, document_id: str) -> list[FormattedItem] | None:
        return collect_items(
            document_id,
            self.records(document_id),
            self._settings,
            mode=self.current_mode(),
        )


__all__ = [
    "Collector",
    "DEDUPE_MESSAGE_CHARS",
    "FormattedItem",
    "collect_items",
    "dedupe_key",
    "effective_threshold",
    "passes_threshold",
]
