"""Tests for :mod:`diagpanel.host.providers`."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from diagpanel.core.severity import Severity
from diagpanel.host.protocols import DiagnosticsProvider
from diagpanel.host.providers import InMemoryDiagnosticsProvider
from diagpanel.ui.events import DiagnosticsChanged, EventBus

from helpers import diag


def test_records_are_coerced_and_severity_sorted() -> None:
    provider = InMemoryDiagnosticsProvider()

    records = provider.set_diagnostics(
        "a.py",
        [diag("hint", 0, 0, "h"), diag(None, 1, 0, "?"), diag(1, 2, 0, "e1"), diag("warn", 3, 0, "w"), diag(1, 4, 0, "e2")],
    )

    assert isinstance(provider, DiagnosticsProvider)
    assert [record.message for record in records] == ["e1", "e2", "w", "h", "?"]
    assert provider.get_diagnostics("a.py") == records
    assert records[0].severity is Severity.ERROR


def test_changes_are_announced_on_the_bus() -> None:
    bus = EventBus()
    seen: list[DiagnosticsChanged] = []
    bus.subscribe(DiagnosticsChanged, seen.append)
    provider = InMemoryDiagnosticsProvider(bus)

    provider.set_diagnostics("a.py", [diag(1, 0, 0, "e")])
    provider.clear("a.py")

    assert [event.document_id for event in seen] == ["a.py", "a.py"]
    assert provider.get_diagnostics("a.py") == ()
    assert provider.document_ids() == ()


def test_load_json_reads_document_map(tmp_path: Path) -> None:
    path = tmp_path / "diagnostics.json"
    path.write_text(
        json.dumps(
            {
                "b.py": [{"severity": 2, "range": {"start": {"line": 4, "character": 1}}, "message": "w"}],
                "a.py": [diag(1, 0, 0, "e")],
                "bad": {"not": "a list"},
            }
        ),
        encoding="utf-8",
    )
    provider = InMemoryDiagnosticsProvider()

    assert provider.load_json(path) == 2
    assert provider.document_ids() == ("a.py", "b.py")
    assert provider.get_diagnostics("b.py")[0].position == (4, 1)


def test_load_json_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "diagnostics.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        InMemoryDiagnosticsProvider().load_json(path)


def test_load_json_tolerates_infinite_positions(tmp_path: Path) -> None:
    path = tmp_path / "diagnostics.json"
    path.write_text('{"a.py": [{"severity": 1, "lnum": Infinity, "col": -Infinity, "message": "e"}]}', encoding="utf-8")
    provider = InMemoryDiagnosticsProvider()

    assert provider.load_json(path) == 1
    assert provider.get_diagnostics("a.py")[0].position == (0, 0)
