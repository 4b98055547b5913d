"""Tests for the panel settings and their loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from diagpanel.core.severity import Severity
from diagpanel.services.settings import PanelSettings, SettingsError, SettingsStore
from diagpanel.theme.models import HighlightStyle


def test_defaults_match_documented_values() -> None:
    settings = PanelSettings()

    assert (settings.width_fraction, settings.height_fraction) == (0.45, 0.25)
    assert (settings.max_lines_min, settings.max_msg_len) == (3, 80)
    assert (settings.winblend, settings.border, settings.zindex) == (45, "rounded", 300)
    assert settings.debounce_ms == 80
    assert settings.severity_threshold is None
    assert settings.live_typing is False
    assert settings.glyphs["ERROR"] == "⛔"
    assert settings.ascii == {"ERROR": "E", "WARN": "W", "INFO": "I", "HINT": "H"}
    assert settings.highlight["border"].fg == (0x88, 0xC0, 0xD0)
    assert settings.ellipsis == "…"


def test_from_mapping_deep_merges_nested_tables() -> None:
    settings = PanelSettings.from_mapping(
        {
            "glyphs": {"warn": "!"},
            "highlight": {"error": {"fg": "#ff0000", "bold": False}},
            "float_opts": {"border": "single"},
            "use_ascii": True,
        }
    )

    assert settings.glyphs["WARN"] == "!"
    assert settings.glyphs["ERROR"] == "⛔"
    assert settings.highlight["error"] == HighlightStyle(fg=(255, 0, 0))
    assert settings.highlight["hint"].italic is True
    assert settings.float_opts == {"border": "single", "source": "always"}
    assert settings.glyph_table() is settings.ascii
    assert settings.ellipsis == "..."


def test_unknown_options_are_ignored() -> None:
    assert PanelSettings.from_mapping({"not_a_field": 1}) == PanelSettings()


def test_threshold_accepts_names_and_numbers() -> None:
    assert PanelSettings(severity_threshold="warning").severity_threshold is Severity.WARN
    assert PanelSettings(severity_threshold=3).severity_threshold is Severity.INFO


@pytest.mark.parametrize(
    ("field_name", "value"),
    [
        ("width_fraction", 0),
        ("height_fraction", 1.5),
        ("max_lines_min", 0),
        ("max_msg_len", 2),
        ("winblend", 101),
        ("debounce_ms", -1),
        ("corner", "middle"),
        ("border", "wavy"),
        ("severity_threshold", "fatal"),
        ("glyphs", "nope"),
        ("highlight", {"error": {"fg": "#12"}}),
        ("zindex", True),
    ],
)
def test_invalid_values_raise_settings_error(field_name: str, value) -> None:
    with pytest.raises(SettingsError) as excinfo:
        PanelSettings(**{field_name: value})
    assert excinfo.value.field_name == field_name


def test_to_dict_is_json_serializable() -> None:
    payload = PanelSettings(severity_threshold="hint").to_dict()

    assert payload["severity_threshold"] == "HINT"
    assert payload["highlight"]["error"]["fg"] == "#ff6b6b"
    json.dumps(payload)


def test_store_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    assert store.load() == PanelSettings()
    assert store.path == tmp_path / "settings.json"


def test_store_reads_options_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"max_msg_len": 60, "ascii": {"HINT": "?"}}), encoding="utf-8")

    settings = SettingsStore(path).load()

    assert settings.max_msg_len == 60
    assert settings.ascii["HINT"] == "?"
    assert settings.ascii["ERROR"] == "E"


def test_store_ignores_corrupt_file(tmp_path: Path, caplog) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == PanelSettings()
    assert "could not be read" in caplog.text


def test_store_raises_for_invalid_values(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"winblend": 400}), encoding="utf-8")

    with pytest.raises(SettingsError):
        SettingsStore(path).load()


def test_overrides_apply_over_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"use_ascii": False, "debounce_ms": 10}), encoding="utf-8")

    settings = SettingsStore(path).load(overrides={"use_ascii": True, "live_typing": None})

    assert settings.use_ascii is True
    assert settings.live_typing is False
    assert settings.debounce_ms == 10


def test_environment_overrides_win(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DIAGPANEL_USE_ASCII", "yes")
    monkeypatch.setenv("DIAGPANEL_LIVE_TYPING", "1")
    monkeypatch.setenv("DIAGPANEL_DEBOUNCE_MS", "250")
    monkeypatch.setenv("DIAGPANEL_SEVERITY_THRESHOLD", "warn")
    monkeypatch.setenv("DIAGPANEL_WIDTH_FRACTION", "0.6")

    settings = SettingsStore(tmp_path / "missing.json").load(overrides={"debounce_ms": 5})

    assert settings.use_ascii is True
    assert settings.live_typing is True
    assert settings.debounce_ms == 250
    assert settings.severity_threshold is Severity.WARN
    assert settings.width_fraction == 0.6


def test_malformed_environment_numbers_are_skipped(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog) -> None:
    monkeypatch.setenv("DIAGPANEL_DEBOUNCE_MS", "soon")

    settings = SettingsStore(tmp_path / "missing.json").load()

    assert settings.debounce_ms == 80
    assert "not a valid integer" in caplog.text
