"""Logging for the diagnostics panel and its demo host.

Records go to a size-rotated file under ``~/.diagpanel/logs`` (or
``DIAGPANEL_LOG_DIR``) and, unless disabled, to stderr. Qt's own warnings
are routed into the same handlers so overlay geometry complaints land next
to the panel's refresh trace.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["configure_logging", "debug_requested", "install_qt_message_handler"]

LOG_FILE_NAME = "diagpanel.log"
_DEFAULT_LOG_DIR = Path.home() / ".diagpanel" / "logs"
_ROTATE_BYTES = 512_000
_ROTATE_KEEP = 2
_RECORD_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_DEBUG_VALUES = frozenset({"1", "true", "yes", "on", "debug"})

_log_path: Path | None = None


def debug_requested(flag: bool = False) -> bool:
    """True when ``--debug`` was passed or ``DIAGPANEL_DEBUG`` is truthy."""

    if flag:
        return True
    return os.environ.get("DIAGPANEL_DEBUG", "").strip().lower() in _DEBUG_VALUES


def configure_logging(
    debug: bool = False,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    qt: bool = True,
    force: bool = False,
) -> Path:
    """Point the root logger at the rotating panel log and return its path.

    Later calls are no-ops returning the first path unless ``force`` is set.
    With ``qt`` the Qt message handler is installed as well, which needs
    PySide6 importable.
    """

    global _log_path
    if _log_path is not None and not force:
        return _log_path

    level = logging.DEBUG if debug_requested(debug) else logging.INFO
    directory = Path(log_dir or os.environ.get("DIAGPANEL_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / LOG_FILE_NAME

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            path, maxBytes=_ROTATE_BYTES, backupCount=_ROTATE_KEEP, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    formatter = logging.Formatter(_RECORD_FORMAT, datefmt="%H:%M:%S")
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    # Event loop chatter drowns the debounce trace at DEBUG.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if qt:
        install_qt_message_handler()

    _log_path = path
    logging.getLogger(__name__).debug("Logging to %s at %s", path, logging.getLevelName(level))
    return path


def install_qt_message_handler() -> None:
    """Redirect Qt's diagnostics output to the ``PySide6`` logger."""

    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }
    qt_logger = logging.getLogger("PySide6")

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        qt_logger.log(levels.get(mode, logging.INFO), message)

    qInstallMessageHandler(_handler)
