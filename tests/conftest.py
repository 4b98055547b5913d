"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from diagpanel.services.settings import PanelSettings  # noqa: E402
from diagpanel.ui.events import EventBus  # noqa: E402

from helpers import FakeHost, FakeProvider, ManualTimerFactory  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in list(os.environ):
        if name.startswith("DIAGPANEL_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DIAGPANEL_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def settings() -> PanelSettings:
    return PanelSettings()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()
