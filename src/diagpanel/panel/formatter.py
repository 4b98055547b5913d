"""Turns one diagnostic record into a panel row."""

from __future__ import annotations

import re

from ..core.records import DiagnosticRecord
from ..core.severity import Severity, severity_name
from ..services.settings import PanelSettings

_WHITESPACE_RE = re.compile(r"\s+")
_ELLIPSIS_BUDGET = 3


def severity_glyph(severity: Severity | None, settings: PanelSettings) -> str:
    """Glyph for ``severity`` from the active table; unknown severities use the info glyph."""

    table = settings.glyph_table()
    fallback = table.get(Severity.INFO.name, "")
    if severity is None:
        return fallback
    return table.get(severity.name, fallback)


def condense_message(message: str, max_len: int, ellipsis: str = "…") -> str:
    """Collapse whitespace runs and cut to ``max_len`` with an ellipsis budget of 3."""

    text = _WHITESPACE_RE.sub(" ", message or "")
    if len(text) > max_len:
        text = text[: max(0, max_len - _ELLIPSIS_BUDGET)] + ellipsis
    return text


def format_diagnostic(record: DiagnosticRecord, settings: PanelSettings) -> tuple[str, int, int]:
    """Return ``(display text, line, column)`` for ``record``.

    The display text carries a one-based ``line:column``; the returned
    position stays zero based for navigation.
    """

    line = record.line
    column = record.column
    message = condense_message(record.message, settings.max_msg_len, settings.ellipsis)
    glyph = severity_glyph(record.severity, settings)
    name = severity_name(record.severity)
    return f"{glyph} {name} line {line + 1}:{column + 1} -- {message}", line, column


__all__ = ["condense_message", "format_diagnostic", "severity_glyph"]
