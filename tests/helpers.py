"""Shared test helpers and stub classes.

Import from here instead of duplicating host or timer stubs in individual
test files.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

from diagpanel.host.protocols import EditingMode, OverlaySpec, Viewport, VisualProperties


class FakeHost:
    """In-memory :class:`~diagpanel.host.protocols.HostEditor` that records every call.

    Set the ``fail_*`` attributes to make the matching primitive raise.

    Example:
        host = FakeHost(current="a.py")
        host.fail_create = True
    """

    def __init__(
        self,
        *,
        current: str | None = "doc",
        mode: Any = EditingMode.NORMAL,
        viewport: Viewport | None = None,
    ) -> None:
        self.current = current
        self.mode = mode
        self.size = viewport or Viewport(rows=40, columns=120)
        self.overlays: dict[int, OverlaySpec] = {}
        self.created: list[OverlaySpec] = []
        self.updated: list[tuple[int, OverlaySpec]] = []
        self.destroyed: list[int] = []
        self.bindings: dict[int, Mapping[str, Callable[[], None]]] = {}
        self.cursor_rows: dict[int, int] = {}
        self.focused: list[str] = []
        self.cursors: list[tuple[str, int, int]] = []
        self.popups: list[tuple[str, int, int, tuple[str, ...], dict[str, Any]]] = []
        self.keymaps: dict[str, Callable[[], None]] = {}
        self.visuals: list[VisualProperties] = []
        self.fail_create = False
        self.fail_update = False
        self.fail_destroy = False
        self.fail_viewport = False
        self.fail_mode = False
        self._next_id = 1

    # HostEditor -----------------------------------------------------------
    def current_document(self) -> str | None:
        return self.current

    def current_mode(self) -> Any:
        if self.fail_mode:
            raise RuntimeError("mode unavailable")
        return self.mode

    def viewport(self) -> Viewport:
        if self.fail_viewport:
            raise RuntimeError("no viewport")
        return self.size

    def create_overlay(self, spec: OverlaySpec) -> int:
        if self.fail_create:
            raise RuntimeError("cannot create overlay")
        overlay_id = self._next_id
        self._next_id += 1
        self.overlays[overlay_id] = spec
        self.created.append(spec)
        self.cursor_rows[overlay_id] = 1
        return overlay_id

    def update_overlay(self, overlay_id: int, spec: OverlaySpec) -> None:
        if self.fail_update:
            raise RuntimeError("cannot update overlay")
        if overlay_id not in self.overlays:
            raise KeyError(overlay_id)
        self.overlays[overlay_id] = spec
        self.updated.append((overlay_id, spec))

    def destroy_overlay(self, overlay_id: int) -> None:
        if self.fail_destroy:
            raise RuntimeError("cannot destroy overlay")
        self.overlays.pop(overlay_id)
        self.destroyed.append(overlay_id)

    def overlay_is_valid(self, overlay_id: int) -> bool:
        return overlay_id in self.overlays

    def overlay_cursor_row(self, overlay_id: int) -> int:
        return self.cursor_rows[overlay_id]

    def bind_overlay_keys(self, overlay_id: int, bindings: Mapping[str, Callable[[], None]]) -> None:
        self.bindings[overlay_id] = dict(bindings)

    def focus_document(self, document_id: str) -> None:
        self.focused.append(document_id)
        self.current = document_id

    def set_cursor(self, document_id: str, line: int, column: int) -> None:
        self.cursors.append((document_id, line, column))

    def open_detail_popup(
        self,
        document_id: str,
        line: int,
        column: int,
        messages: Sequence[str],
        options: Mapping[str, Any],
    ) -> None:
        self.popups.append((document_id, line, column, tuple(messages), dict(options)))

    def register_keymap(self, sequence: str, callback: Callable[[], None]) -> None:
        self.keymaps[sequence] = callback

    def apply_visual_properties(self, properties: VisualProperties) -> None:
        self.visuals.append(properties)

    # Test helpers -----------------------------------------------------------
    def dismiss(self, overlay_id: int) -> None:
        """Destroy ``overlay_id`` the way a user closing the window would."""

        self.overlays.pop(overlay_id, None)

    @property
    def live_overlays(self) -> list[int]:
        return sorted(self.overlays)


class FakeProvider:
    """Diagnostics provider backed by a plain dict."""

    def __init__(self, diagnostics: Mapping[str, Sequence[Any]] | None = None) -> None:
        self.diagnostics: dict[str, list[Any]] = {key: list(value) for key, value in (diagnostics or {}).items()}
        self.fail = False
        self.calls: list[str] = []

    def get_diagnostics(self, document_id: str) -> list[Any]:
        self.calls.append(document_id)
        if self.fail:
            raise RuntimeError("provider offline")
        return list(self.diagnostics.get(document_id, []))


class FakeTimer:
    """Timer handle whose expiry is triggered by the test."""

    def __init__(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self.delay_ms = delay_ms
        self.callback = callback
        self.stopped = False
        self.released = False
        self.fired = False

    def is_valid(self) -> bool:
        return not (self.fired or self.released)

    def stop(self) -> None:
        self.stopped = True

    def release(self) -> None:
        self.released = True

    def fire(self) -> None:
        self.fired = True
        self.callback()


class ManualTimerFactory:
    """Timer factory that hands out :class:`FakeTimer` instances."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []
        self.fail = False
        self.return_none = False

    def start(self, delay_ms: int, callback: Callable[[], None]) -> FakeTimer | None:
        if self.fail:
            raise RuntimeError("timer pool exhausted")
        if self.return_none:
            return None
        timer = FakeTimer(delay_ms, callback)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.is_valid()]

    def fire_all(self) -> None:
        """Fire every timer that has not been released, oldest first."""

        for timer in list(self.timers):
            if timer.is_valid():
                timer.fire()


def diag(severity: Any, line: int, column: int, message: str, **extra: Any) -> dict[str, Any]:
    """Flat ``lnum``/``col`` diagnostic mapping."""

    payload = {"severity": severity, "lnum": line, "col": column, "message": message}
    payload.update(extra)
    return payload
