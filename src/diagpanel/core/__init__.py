"""Core domain types shared by every panel component."""

from .records import DiagnosticRecord
from .severity import Severity, coerce_severity, highlight_group, severity_name

__all__ = ["DiagnosticRecord", "Severity", "coerce_severity", "highlight_group", "severity_name"]
