"""Diagnostic records as reported by an external analysis provider."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .severity import Severity, coerce_severity


@dataclass(slots=True, frozen=True)
class DiagnosticRecord:
    """One reported problem: severity, zero-based start position and message.

    Records are read-only inputs. Providers hand over whatever shape they
    produce (LSP style ``range.start`` mappings, flat ``lnum``/``col``
    mappings, or objects with matching attributes) and :meth:`from_value`
    normalizes it. Missing or malformed fields are defaulted instead of
    rejected so a partial diagnostic still reaches the panel.
    """

    severity: Severity | None = None
    line: int = 0
    column: int = 0
    message: str = ""
    source: str | None = None
    code: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "severity", coerce_severity(self.severity))
        object.__setattr__(self, "line", _coerce_position(self.line))
        object.__setattr__(self, "column", _coerce_position(self.column))
        object.__setattr__(self, "message", _coerce_text(self.message))

    @property
    def position(self) -> tuple[int, int]:
        return (self.line, self.column)

    @classmethod
    def from_value(cls, value: Any) -> DiagnosticRecord:
        """Coerce ``value`` into a :class:`DiagnosticRecord`."""

        if isinstance(value, DiagnosticRecord):
            return value
        if value is None:
            return cls()
        getter = _mapping_getter if isinstance(value, Mapping) else _attribute_getter

        line, column = _range_start(getter(value, "range"))
        if line is None:
            line = getter(value, "lnum")
            if line is None:
                line = getter(value, "line")
        if column is None:
            column = getter(value, "col")
            if column is None:
                column = getter(value, "column")

        code = getter(value, "code")
        source = getter(value, "source")
        return cls(
            severity=getter(value, "severity"),
            line=line,
            column=column,
            message=getter(value, "message"),
            source=str(source) if source is not None else None,
            code=str(code) if code is not None else None,
        )


def _mapping_getter(value: Mapping[str, Any], key: str) -> Any:
    return value.get(key)


def _attribute_getter(value: Any, key: str) -> Any:
    return getattr(value, key, None)


def _range_start(range_value: Any) -> tuple[Any, Any]:
    if range_value is None:
        return None, None
    getter = _mapping_getter if isinstance(range_value, Mapping) else _attribute_getter
    start = getter(range_value, "start")
    if start is None:
        return None, None
    start_getter = _mapping_getter if isinstance(start, Mapping) else _attribute_getter
    return start_getter(start, "line"), start_getter(start, "character")


def _coerce_position(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


__all__ = ["DiagnosticRecord"]
