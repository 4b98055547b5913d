"""Panel settings dataclass and the loader that builds it at startup."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..core.severity import Severity, coerce_severity
from ..theme.models import DEFAULT_HIGHLIGHTS, HighlightStyle

__all__ = [
    "BORDER_STYLES",
    "CORNERS",
    "PanelSettings",
    "SettingsError",
    "SettingsStore",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".diagpanel"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGPANEL_USE_ASCII": "use_ascii",
    "DIAGPANEL_LIVE_TYPING": "live_typing",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGPANEL_DEBOUNCE_MS": "debounce_ms",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGPANEL_WIDTH_FRACTION": "width_fraction",
    "DIAGPANEL_HEIGHT_FRACTION": "height_fraction",
}
_STR_ENV_OVERRIDES: Mapping[str, str] = {
    "DIAGPANEL_SEVERITY_THRESHOLD": "severity_threshold",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_NESTED_TABLES = ("glyphs", "ascii", "highlight", "float_opts")

CORNERS: tuple[str, ...] = ("top-right", "top-left", "bottom-right", "bottom-left")
BORDER_STYLES: tuple[str, ...] = ("rounded", "single", "double", "solid", "shadow", "none")

_DEFAULT_GLYPHS: Mapping[str, str] = {"ERROR": "⛔", "WARN": "🧙", "INFO": "🔮", "HINT": "💡"}
_DEFAULT_ASCII: Mapping[str, str] = {"ERROR": "E", "WARN": "W", "INFO": "I", "HINT": "H"}


class SettingsError(ValueError):
    """Raised when a configuration value is out of range or malformed."""

    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


@dataclass(slots=True, frozen=True)
class PanelSettings:
    """Process-wide panel configuration, immutable once built."""

    use_ascii: bool = False
    width_fraction: float = 0.45
    height_fraction: float = 0.25
    max_lines_min: int = 3
    max_msg_len: int = 80
    winblend: int = 45
    border: str = "rounded"
    zindex: int = 300
    corner: str = "top-right"
    margin: int = 1
    glyphs: Dict[str, str] = field(default_factory=lambda: dict(_DEFAULT_GLYPHS))
    ascii: Dict[str, str] = field(default_factory=lambda: dict(_DEFAULT_ASCII))
    highlight: Dict[str, HighlightStyle] = field(
        default_factory=lambda: {key: HighlightStyle.from_value(value) for key, value in DEFAULT_HIGHLIGHTS.items()}
    )
    show_on_bufenter: bool = True
    show_on_diag_changed: bool = True
    show_on_cursorhold: bool = True
    debounce_ms: int = 80
    severity_threshold: Severity | None = None
    live_typing: bool = False
    keymap: str = "Ctrl+Alt+P"
    buffer_keymaps: bool = True
    float_opts: Dict[str, Any] = field(default_factory=lambda: {"border": "rounded", "source": "always"})

    def __post_init__(self) -> None:
        self._check_fraction("width_fraction", self.width_fraction)
        self._check_fraction("height_fraction", self.height_fraction)
        self._set("max_lines_min", self._check_int("max_lines_min", self.max_lines_min, minimum=1))
        # Room for at least one character ahead of the ellipsis budget.
        self._set("max_msg_len", self._check_int("max_msg_len", self.max_msg_len, minimum=4))
        self._set("winblend", self._check_int("winblend", self.winblend, minimum=0, maximum=100))
        self._set("zindex", self._check_int("zindex", self.zindex))
        self._set("margin", self._check_int("margin", self.margin, minimum=0))
        self._set("debounce_ms", self._check_int("debounce_ms", self.debounce_ms, minimum=0))
        if self.corner not in CORNERS:
            raise SettingsError("corner", f"expected one of {', '.join(CORNERS)}, got {self.corner!r}")
        if self.border not in BORDER_STYLES:
            raise SettingsError("border", f"expected one of {', '.join(BORDER_STYLES)}, got {self.border!r}")
        if self.severity_threshold is not None:
            threshold = coerce_severity(self.severity_threshold)
            if threshold is None:
                raise SettingsError("severity_threshold", f"unknown severity {self.severity_threshold!r}")
            self._set("severity_threshold", threshold)
        self._set("glyphs", self._glyph_table("glyphs", self.glyphs, _DEFAULT_GLYPHS))
        self._set("ascii", self._glyph_table("ascii", self.ascii, _DEFAULT_ASCII))
        try:
            highlight = {str(key).lower(): HighlightStyle.from_value(value) for key, value in self.highlight.items()}
        except (TypeError, ValueError) as exc:
            raise SettingsError("highlight", str(exc)) from exc
        self._set("highlight", highlight)
        self._set("float_opts", dict(self.float_opts or {}))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def glyph_table(self) -> Mapping[str, str]:
        return self.ascii if self.use_ascii else self.glyphs

    @property
    def ellipsis(self) -> str:
        return "..." if self.use_ascii else "…"

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> PanelSettings:
        """Deep-merge ``data`` over the defaults; unknown keys are ignored."""

        if not data:
            return cls()
        return cls().merged(data)

    def merged(self, data: Mapping[str, Any]) -> PanelSettings:
        allowed = {item.name for item in fields(self)}
        updates: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in allowed:
                LOGGER.debug("Ignoring unknown panel option %s", key)
                continue
            if key in _NESTED_TABLES and isinstance(value, Mapping):
                merged_table = dict(getattr(self, key))
                merged_table.update(value)
                updates[key] = merged_table
                continue
            updates[key] = value
        if not updates:
            return self
        return replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["highlight"] = {key: style.to_dict() for key, style in self.highlight.items()}
        data["severity_threshold"] = self.severity_threshold.name if self.severity_threshold else None
        return data

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    def _check_fraction(self, name: str, value: Any) -> None:
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise SettingsError(name, f"expected a number, got {value!r}") from exc
        if not 0.0 < number <= 1.0:
            raise SettingsError(name, f"must be within (0, 1], got {number}")
        self._set(name, number)

    @staticmethod
    def _check_int(name: str, value: Any, *, minimum: int | None = None, maximum: int | None = None) -> int:
        if isinstance(value, bool):
            raise SettingsError(name, f"expected an integer, got {value!r}")
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise SettingsError(name, f"expected an integer, got {value!r}") from exc
        if minimum is not None and number < minimum:
            raise SettingsError(name, f"must be >= {minimum}, got {number}")
        if maximum is not None and number > maximum:
            raise SettingsError(name, f"must be <= {maximum}, got {number}")
        return number

    @staticmethod
    def _glyph_table(name: str, value: Any, defaults: Mapping[str, str]) -> Dict[str, str]:
        if not isinstance(value, Mapping):
            raise SettingsError(name, "expected a mapping of severity names to glyphs")
        table = dict(defaults)
        for key, glyph in value.items():
            table[str(key).upper()] = str(glyph)
        return table


class SettingsStore:
    """Loads :class:`PanelSettings` from a JSON options file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> PanelSettings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = PanelSettings.from_mapping(payload)
        LOGGER.debug("Panel settings loaded from %s (%d option(s))", self._path, len(payload))
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Settings file %s could not be read: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s must contain a JSON object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: PanelSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> PanelSettings:
        filtered = {key: value for key, value in overrides.items() if value is not None}
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = settings.merged(filtered)
        return settings

    def _apply_env_overrides(self, settings: PanelSettings) -> PanelSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        for env_name, field_name in _STR_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None and value.strip():
                overrides[field_name] = value.strip()
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings
