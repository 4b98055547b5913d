"""Service layer helpers (settings loading)."""

from .settings import PanelSettings, SettingsError, SettingsStore

__all__ = ["PanelSettings", "SettingsError", "SettingsStore"]
