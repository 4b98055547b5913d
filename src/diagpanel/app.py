"""Demo application: a plain-text editor with the diagnostics panel attached."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Sequence, cast

from .host.providers import InMemoryDiagnosticsProvider
from .host.timers import AsyncioTimerFactory
from .services.settings import PanelSettings, SettingsError, SettingsStore
from .ui.events import EventBus, PanelStateChanged
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Settings overrides carried by command line flags."""

    overrides: Dict[str, Any] = {}
    if args.ascii:
        overrides["use_ascii"] = True
    if args.live_typing:
        overrides["live_typing"] = True
    if args.threshold:
        overrides["severity_threshold"] = args.threshold
    return overrides


def create_qapp() -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("DiagPanel")
    app.setApplicationDisplayName("DiagPanel")

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    return QtRuntime(app=app, loop=loop)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `diagpanel` console script."""

    args = _parse_cli_args(argv)
    logging_utils.configure_logging(args.debug)

    store = SettingsStore(Path(args.settings).expanduser() if args.settings else None)
    try:
        settings = store.load(overrides=build_overrides(args) or None)
    except SettingsError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    runtime = create_qapp()
    window, host, _controller = _build_window(settings, runtime, args)
    window.show()

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        host.shutdown()
        _drain_event_loop(loop)
        loop.close()


def _build_window(settings: PanelSettings, runtime: QtRuntime, args: argparse.Namespace) -> tuple[Any, Any, Any]:
    from PySide6.QtGui import QFont
    from PySide6.QtWidgets import QMainWindow, QPlainTextEdit

    from .host.qt_host import QtEditorHost
    from .panel.controller import PanelController

    window = QMainWindow()
    window.setWindowTitle("DiagPanel")
    window.resize(1100, 700)
    editor = QPlainTextEdit(window)
    editor.setFont(QFont("Monospace", 11))
    editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
    window.setCentralWidget(editor)

    bus = EventBus()
    provider = InMemoryDiagnosticsProvider(bus)
    host = QtEditorHost(editor, bus)
    controller = PanelController(settings, host, provider, bus, AsyncioTimerFactory(runtime.loop))
    controller.install()
    bus.subscribe(PanelStateChanged, _log_panel_state)
    runtime.app.aboutToQuit.connect(host.shutdown)

    first = None
    for raw_path in args.files:
        path = Path(raw_path).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            _LOGGER.warning("Cannot open %s: %s", path, exc)
            continue
        document_id = str(path)
        host.open_document(document_id, text)
        first = first or document_id
    if first is None:
        first = "untitled"
        host.open_document(first, "")

    if args.diagnostics:
        try:
            loaded = provider.load_json(Path(args.diagnostics).expanduser())
        except (OSError, ValueError) as exc:
            _LOGGER.warning("Diagnostics file %s could not be loaded: %s", args.diagnostics, exc)
        else:
            _LOGGER.info("Loaded diagnostics for %d document(s)", loaded)

    host.show_document(first)
    return window, host, controller


def _log_panel_state(event: PanelStateChanged) -> None:
    _LOGGER.info("Panel %s (%s, %d item(s))", event.state, event.document_id or "-", event.item_count)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="diagpanel",
        description="Open files in a minimal editor with the live diagnostics panel attached.",
    )
    parser.add_argument("files", nargs="*", metavar="FILE", help="Files to open; the first one is shown.")
    parser.add_argument(
        "--diagnostics",
        metavar="PATH",
        help="JSON file mapping document ids (file paths) to diagnostic lists.",
    )
    parser.add_argument(
        "--settings",
        metavar="PATH",
        help="Override the default ~/.diagpanel/settings.json path.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--ascii", action="store_true", help="Use ASCII glyphs instead of emoji.")
    parser.add_argument(
        "--live-typing",
        action="store_true",
        help="Keep refreshing while typing, showing only errors and warnings.",
    )
    parser.add_argument(
        "--threshold",
        metavar="SEVERITY",
        help="Hide diagnostics less severe than SEVERITY (error, warn, info, hint).",
    )
    return parser.parse_args(argv)


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shutdown async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = None
        with contextlib.suppress(RuntimeError):
            current_task = asyncio.current_task(loop=loop)

        tasks = [task for task in asyncio.all_tasks(loop) if not task.done() and task is not current_task]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover - defensive guard
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


if __name__ == "__main__":  # pragma: no cover
    main()
