"""Severity ordering and the lookup tables keyed by it."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Mapping


class Severity(IntEnum):
    """Diagnostic severity; a lower value is more severe."""

    ERROR = 1
    WARN = 2
    INFO = 3
    HINT = 4


UNKNOWN_SEVERITY_NAME = "DIAG"

SEVERITY_NAMES: Mapping[Severity, str] = {
    Severity.ERROR: "ERROR",
    Severity.WARN: "WARN",
    Severity.INFO: "INFO",
    Severity.HINT: "HINT",
}

HIGHLIGHT_GROUPS: Mapping[Severity, str] = {
    Severity.ERROR: "DiagnosticVirtualTextError",
    Severity.WARN: "DiagnosticVirtualTextWarn",
    Severity.INFO: "DiagnosticVirtualTextInfo",
    Severity.HINT: "DiagnosticVirtualTextHint",
}

SIGN_GROUPS: Mapping[Severity, str] = {
    Severity.ERROR: "DiagnosticSignError",
    Severity.WARN: "DiagnosticSignWarn",
    Severity.INFO: "DiagnosticSignInfo",
    Severity.HINT: "DiagnosticSignHint",
}

_NAME_ALIASES: Mapping[str, Severity] = {
    "error": Severity.ERROR,
    "err": Severity.ERROR,
    "e": Severity.ERROR,
    "warning": Severity.WARN,
    "warn": Severity.WARN,
    "w": Severity.WARN,
    "information": Severity.INFO,
    "info": Severity.INFO,
    "i": Severity.INFO,
    "hint": Severity.HINT,
    "h": Severity.HINT,
}


def coerce_severity(value: Any) -> Severity | None:
    """Return the :class:`Severity` for ``value`` or ``None`` when unrecognized."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Severity):
        return value
    if isinstance(value, int):
        try:
            return Severity(value)
        except ValueError:
            return None
    if isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            return coerce_severity(int(text))
        return _NAME_ALIASES.get(text)
    return None


def severity_name(severity: Severity | None) -> str:
    if severity is None:
        return UNKNOWN_SEVERITY_NAME
    return SEVERITY_NAMES.get(severity, UNKNOWN_SEVERITY_NAME)


def highlight_group(severity: Severity | None) -> str:
    """Highlight group for a panel row; unknown severities render as info."""

    if severity is None:
        return HIGHLIGHT_GROUPS[Severity.INFO]
    return HIGHLIGHT_GROUPS.get(severity, HIGHLIGHT_GROUPS[Severity.INFO])


__all__ = [
    "HIGHLIGHT_GROUPS",
    "SEVERITY_NAMES",
    "SIGN_GROUPS",
    "Severity",
    "UNKNOWN_SEVERITY_NAME",
    "coerce_severity",
    "highlight_group",
    "severity_name",
]
