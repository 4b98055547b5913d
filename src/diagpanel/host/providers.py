"""In-memory diagnostics provider used by the demo host and tests."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from ..core.records import DiagnosticRecord
from ..ui.events import DiagnosticsChanged, EventBus

LOGGER = logging.getLogger(__name__)


def _severity_sort_key(record: DiagnosticRecord) -> int:
    # Unknown severities sort after hints.
    return int(record.severity) if record.severity is not None else 99


class InMemoryDiagnosticsProvider:
    """Holds diagnostic records per document and announces replacements.

    Records are kept severity sorted (stable, so equal severities keep the
    order they were reported in), which is the order the collector expects
    when it keeps the first of several duplicates.
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._bus = event_bus
        self._records: dict[str, tuple[DiagnosticRecord, ...]] = {}

    def get_diagnostics(self, document_id: str) -> tuple[DiagnosticRecord, ...]:
        return self._records.get(document_id, ())

    def set_diagnostics(self, document_id: str, records: Iterable[Any]) -> tuple[DiagnosticRecord, ...]:
        normalized = tuple(
            sorted((DiagnosticRecord.from_value(record) for record in records), key=_severity_sort_key)
        )
        if normalized:
            self._records[document_id] = normalized
        else:
            self._records.pop(document_id, None)
        LOGGER.debug("Diagnostics for %s replaced (%d record(s))", document_id, len(normalized))
        self._announce(document_id)
        return normalized

    def clear(self, document_id: str) -> None:
        self.set_diagnostics(document_id, ())

    def document_ids(self) -> tuple[str, ...]:
        return tuple(sorted(self._records))

    def load_json(self, path: Path) -> int:
        """Load ``{"document-id": [record, ...]}`` from ``path``; returns documents loaded."""

        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path} must contain an object mapping document ids to diagnostics")
        loaded = 0
        for document_id, records in payload.items():
            if not isinstance(records, list):
                LOGGER.warning("Skipping %s in %s: expected a list of diagnostics", document_id, path)
                continue
            self.set_diagnostics(str(document_id), records)
            loaded += 1
        return loaded

    def _announce(self, document_id: str) -> None:
        if self._bus is not None:
            self._bus.publish(DiagnosticsChanged(document_id=document_id))


__all__ = ["InMemoryDiagnosticsProvider"]
