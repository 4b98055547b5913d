"""Tests for the panel state machine in :mod:`diagpanel.panel.state`."""

from __future__ import annotations

from diagpanel.core.severity import Severity
from diagpanel.host.protocols import Viewport
from diagpanel.panel.collector import Collector
from diagpanel.panel.state import DiagnosticsPanel, PanelState, RefreshOutcome
from diagpanel.services.settings import PanelSettings

from helpers import FakeHost, FakeProvider, diag


def _panel(host: FakeHost, provider: FakeProvider, settings: PanelSettings | None = None, **kwargs):
    active = settings or PanelSettings(use_ascii=True)
    return DiagnosticsPanel(active, host, Collector(active, host, provider), **kwargs)


def test_first_refresh_opens_overlay_and_commits_snapshot(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 9, 4, "X"), diag(3, 9, 4, "X")]})
    panel = _panel(host, provider)

    assert panel.refresh("doc") is RefreshOutcome.OPENED

    assert panel.state is PanelState.OPEN
    assert len(host.created) == 1
    spec = host.created[0]
    assert spec.lines == ("E ERROR line 10:5 -- X",)
    assert spec.highlights == ("DiagnosticVirtualTextError",)
    assert spec.width == len(spec.lines[0]) + 2
    assert (spec.border, spec.winblend, spec.zindex) == ("rounded", 45, 300)
    snapshot = panel.snapshot
    assert snapshot is not None
    assert snapshot.document_id == "doc"
    assert snapshot.fingerprint == (1, "E ERROR line 10:5 -- X")
    assert panel.item_at(1).line == 9


def test_no_diagnostics_while_closed_is_noop(host: FakeHost) -> None:
    panel = _panel(host, FakeProvider())

    assert panel.refresh("doc") is RefreshOutcome.NOOP
    assert host.created == []
    assert panel.snapshot is None


def test_same_content_is_unchanged(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("doc")

    assert panel.refresh("doc") is RefreshOutcome.UNCHANGED
    assert host.updated == []


def test_changed_content_updates_in_place(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("doc")
    provider.diagnostics["doc"].append(diag(2, 1, 0, "b"))

    assert panel.refresh("doc") is RefreshOutcome.UPDATED

    assert len(host.created) == 1
    overlay_id, spec = host.updated[0]
    assert overlay_id == panel.overlay.overlay_id
    assert spec.highlights == ("DiagnosticVirtualTextError", "DiagnosticVirtualTextWarn")
    assert len(panel.items) == 2


def test_switching_documents_reuses_the_overlay(host: FakeHost) -> None:
    provider = FakeProvider({"a": [diag(1, 0, 0, "same")], "b": [diag(1, 0, 0, "same")]})
    panel = _panel(host, provider)
    panel.refresh("a")

    assert panel.refresh("b") is RefreshOutcome.UPDATED

    assert host.live_overlays == [panel.overlay.overlay_id]
    assert panel.document_id == "b"
    assert {item.document_id for item in panel.items} == {"b"}


def test_emptied_document_closes_panel(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("doc")
    overlay_id = panel.overlay.overlay_id
    provider.diagnostics["doc"] = []

    assert panel.refresh("doc") is RefreshOutcome.CLOSED

    assert panel.state is PanelState.CLOSED
    assert host.destroyed == [overlay_id]
    assert panel.snapshot is None
    assert panel.items == ()


def test_empty_other_document_leaves_panel_open(host: FakeHost) -> None:
    provider = FakeProvider({"a": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("a")

    assert panel.refresh("b") is RefreshOutcome.NOOP
    assert panel.document_id == "a"
    assert panel.is_open()


def test_failed_create_leaves_panel_closed_and_retries(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    host.fail_create = True

    assert panel.refresh("doc") is RefreshOutcome.FAILED
    assert panel.state is PanelState.CLOSED
    assert panel.snapshot is None

    host.fail_create = False
    assert panel.refresh("doc") is RefreshOutcome.OPENED


def test_failed_update_recreates_overlay(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("doc")
    first_id = panel.overlay.overlay_id
    provider.diagnostics["doc"].append(diag(2, 1, 0, "b"))
    host.fail_update = True

    assert panel.refresh("doc") is RefreshOutcome.OPENED

    assert first_id in host.destroyed
    assert host.live_overlays == [panel.overlay.overlay_id]
    assert len(panel.items) == 2


def test_overlay_invalidated_by_host_is_recreated(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("doc")
    host.dismiss(panel.overlay.overlay_id)

    assert not panel.is_open()
    assert panel.refresh("doc") is RefreshOutcome.OPENED
    assert len(host.created) == 2


def test_close_is_idempotent_and_tolerates_destroy_failure(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("doc")
    host.fail_destroy = True

    assert panel.close() is True
    assert panel.close() is False
    assert panel.state is PanelState.CLOSED
    assert panel.overlay is None


def test_handle_overlay_dismissed_forgets_state(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    panel = _panel(host, provider)
    panel.refresh("doc")
    overlay_id = panel.overlay.overlay_id
    host.dismiss(overlay_id)

    assert panel.handle_overlay_dismissed(overlay_id + 100) is False
    assert panel.handle_overlay_dismissed(overlay_id) is True
    assert panel.snapshot is None
    assert host.destroyed == []


def test_viewport_failure_uses_fallback_size(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "m" * 70)]})
    panel = _panel(host, provider)
    host.fail_viewport = True

    assert panel.refresh("doc") is RefreshOutcome.OPENED
    # 45% of the 80 column fallback.
    assert host.created[0].width == 36 + 2


def test_height_respects_minimum_rows(host: FakeHost) -> None:
    records = [diag(Severity.HINT, index, 0, f"h{index}") for index in range(10)]
    provider = FakeProvider({"doc": records})
    host.size = Viewport(rows=4, columns=120)
    panel = _panel(host, provider)

    panel.refresh("doc")

    assert host.created[0].height == 3


def test_key_bindings_are_attached_to_new_overlays(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    actions: list[str] = []
    bindings = {"<CR>": lambda: actions.append("activate"), "q": lambda: actions.append("close")}
    panel = _panel(host, provider, key_bindings=lambda: bindings)

    panel.refresh("doc")

    bound = host.bindings[panel.overlay.overlay_id]
    bound["q"]()
    assert actions == ["close"]


def test_key_bindings_skipped_when_disabled(host: FakeHost) -> None:
    provider = FakeProvider({"doc": [diag(1, 0, 0, "a")]})
    settings = PanelSettings(buffer_keymaps=False)
    panel = _panel(host, provider, settings, key_bindings=lambda: {"q": lambda: None})

    panel.refresh("doc")

    assert host.bindings == {}
