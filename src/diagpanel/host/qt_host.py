"""PySide6 implementation of the host editor protocol.

One :class:`QPlainTextEdit` shows one document at a time out of a set of
:class:`QTextDocument` instances keyed by document id. The panel overlay is
a frameless :class:`QListWidget` parented to the editor viewport and placed
in character cells derived from the editor font.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, Mapping, Sequence

import shiboken6
from PySide6.QtCore import QEvent, QObject, Qt, QTimer
from PySide6.QtGui import QColor, QFont, QFontMetrics, QKeySequence, QShortcut, QTextCursor, QTextDocument
from PySide6.QtWidgets import (
    QAbstractItemView,
    QFrame,
    QListWidget,
    QListWidgetItem,
    QPlainTextDocumentLayout,
    QPlainTextEdit,
    QToolTip,
)

from ..core.severity import HIGHLIGHT_GROUPS, SEVERITY_NAMES, Severity
from ..theme.models import HighlightStyle, color_to_hex
from ..ui.events import (
    CursorIdle,
    DocumentEntered,
    EditorShutdown,
    EventBus,
    OverlayDismissed,
    VisualPropertiesChanged,
)
from .protocols import EditingMode, OverlaySpec, Viewport, VisualProperties

LOGGER = logging.getLogger(__name__)

DEFAULT_IDLE_MS = 800

# Vim-style key names used by the panel mapped onto Qt key sequence text.
_KEY_NAMES: Mapping[str, str] = {
    "<CR>": "Return",
    "<Enter>": "Enter",
    "<Esc>": "Esc",
    "<Tab>": "Tab",
    "<Space>": "Space",
}

_BORDER_CSS: Mapping[str, str] = {
    "rounded": "1px solid {color}; border-radius: 6px",
    "single": "1px solid {color}",
    "solid": "2px solid {color}",
    "double": "3px double {color}",
    "shadow": "1px solid {color}; border-top: none; border-left: none",
    "none": "none",
}

_GROUP_STYLE_KEYS: Mapping[str, str] = {
    group: SEVERITY_NAMES[severity].lower() for severity, group in HIGHLIGHT_GROUPS.items()
}

_VISUAL_EVENT_TYPES = {
    QEvent.Type.PaletteChange: "palette",
    QEvent.Type.StyleChange: "style",
    QEvent.Type.FontChange: "font",
}


def qt_key_sequence(sequence: str) -> QKeySequence:
    """Translate ``<CR>``/``q`` style names into a :class:`QKeySequence`."""

    text = _KEY_NAMES.get(sequence, sequence)
    if len(text) == 1:
        text = text.upper()
    return QKeySequence(text)


class QtEditorHost(QObject):
    """Host editor backed by a single :class:`QPlainTextEdit`."""

    def __init__(self, editor: QPlainTextEdit, event_bus: EventBus, *, idle_ms: int = DEFAULT_IDLE_MS) -> None:
        super().__init__(editor)
        self._editor = editor
        self._bus = event_bus
        self._documents: Dict[str, QTextDocument] = {}
        self._current: str | None = None
        self._mode = EditingMode.NORMAL
        self._overlays: Dict[int, QListWidget] = {}
        self._specs: Dict[int, OverlaySpec] = {}
        self._ids = itertools.count(1)
        self._keymaps: Dict[str, QShortcut] = {}
        self._visual = VisualProperties()
        self._last_popup: tuple[str, int, int, tuple[str, ...]] | None = None
        self._shut_down = False

        self._idle_timer = QTimer(self)
        self._idle_timer.setSingleShot(True)
        self._idle_timer.setInterval(max(0, idle_ms))
        self._idle_timer.timeout.connect(self._on_idle)

        editor.cursorPositionChanged.connect(self._restart_idle_timer)
        editor.installEventFilter(self)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    @property
    def editor(self) -> QPlainTextEdit:
        return self._editor

    @property
    def visual_properties(self) -> VisualProperties:
        return self._visual

    @property
    def last_popup(self) -> tuple[str, int, int, tuple[str, ...]] | None:
        return self._last_popup

    def open_document(self, document_id: str, text: str = "") -> QTextDocument:
        document = self._documents.get(document_id)
        if document is None:
            document = QTextDocument(self)
            document.setDocumentLayout(QPlainTextDocumentLayout(document))
            self._documents[document_id] = document
        document.setPlainText(text)
        return document

    def show_document(self, document_id: str) -> None:
        document = self._documents.get(document_id)
        if document is None:
            raise KeyError(f"Unknown document {document_id!r}")
        if self._current != document_id:
            self._editor.setDocument(document)
            self._current = document_id
        self._bus.publish(DocumentEntered(document_id=document_id))

    # ------------------------------------------------------------------
    # HostEditor protocol
    # ------------------------------------------------------------------
    def current_document(self) -> str | None:
        return self._current

    def current_mode(self) -> EditingMode:
        return self._mode

    def viewport(self) -> Viewport:
        cell_width, cell_height = self._cell_size()
        area = self._editor.viewport()
        return Viewport(
            rows=max(1, area.height() // cell_height),
            columns=max(1, area.width() // cell_width),
        )

    def create_overlay(self, spec: OverlaySpec) -> int:
        widget = QListWidget(self._editor.viewport())
        widget.setFrameShape(QFrame.Shape.NoFrame)
        widget.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        widget.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        widget.setFont(self._editor.font())
        overlay_id = next(self._ids)
        self._overlays[overlay_id] = widget
        widget.destroyed.connect(lambda *_args, key=overlay_id: self._on_overlay_destroyed(key))
        self._render(overlay_id, widget, spec)
        widget.setCurrentRow(0)
        widget.show()
        LOGGER.debug("Overlay %s created (%d line(s))", overlay_id, len(spec.lines))
        return overlay_id

    def update_overlay(self, overlay_id: int, spec: OverlaySpec) -> None:
        widget = self._widget(overlay_id)
        row = widget.currentRow()
        self._render(overlay_id, widget, spec)
        widget.setCurrentRow(min(max(row, 0), widget.count() - 1))

    def destroy_overlay(self, overlay_id: int) -> None:
        widget = self._overlays.pop(overlay_id, None)
        self._specs.pop(overlay_id, None)
        if widget is None:
            raise KeyError(f"Unknown overlay {overlay_id}")
        if shiboken6.isValid(widget):
            widget.hide()
            widget.deleteLater()

    def overlay_is_valid(self, overlay_id: int) -> bool:
        widget = self._overlays.get(overlay_id)
        return widget is not None and shiboken6.isValid(widget)

    def overlay_cursor_row(self, overlay_id: int) -> int:
        return self._widget(overlay_id).currentRow() + 1

    def bind_overlay_keys(self, overlay_id: int, bindings: Mapping[str, Callable[[], None]]) -> None:
        widget = self._widget(overlay_id)
        for sequence, callback in bindings.items():
            shortcut = QShortcut(qt_key_sequence(sequence), widget)
            shortcut.setContext(Qt.ShortcutContext.WidgetShortcut)
            shortcut.activated.connect(callback)
        activate = bindings.get("<CR>")
        if activate is not None:
            widget.itemDoubleClicked.connect(lambda _item: activate())

    def focus_document(self, document_id: str) -> None:
        if document_id not in self._documents:
            raise KeyError(f"Unknown document {document_id!r}")
        if self._current != document_id:
            self.show_document(document_id)
        self._editor.setFocus(Qt.FocusReason.OtherFocusReason)

    def set_cursor(self, document_id: str, line: int, column: int) -> None:
        document = self._documents[document_id]
        block = document.findBlockByNumber(line)
        if not block.isValid():
            block = document.lastBlock()
        cursor = QTextCursor(block)
        offset = min(max(column, 0), max(block.length() - 1, 0))
        cursor.movePosition(QTextCursor.MoveOperation.Right, QTextCursor.MoveMode.MoveAnchor, offset)
        if self._current == document_id:
            self._editor.setTextCursor(cursor)
            self._editor.ensureCursorVisible()

    def open_detail_popup(
        self,
        document_id: str,
        line: int,
        column: int,
        messages: Sequence[str],
        options: Mapping[str, Any],
    ) -> None:
        del options
        self._last_popup = (document_id, line, column, tuple(messages))
        if not messages:
            return
        anchor = self._editor.cursorRect().bottomLeft()
        position = self._editor.viewport().mapToGlobal(anchor)
        QToolTip.showText(position, "\n".join(messages), self._editor)

    def register_keymap(self, sequence: str, callback: Callable[[], None]) -> None:
        if not sequence or not sequence.strip():
            raise ValueError("Key sequence cannot be empty")
        previous = self._keymaps.pop(sequence, None)
        if previous is not None:
            previous.setEnabled(False)
            previous.deleteLater()
        shortcut = QShortcut(QKeySequence(sequence), self._editor.window())
        shortcut.setContext(Qt.ShortcutContext.ApplicationShortcut)
        shortcut.activated.connect(callback)
        self._keymaps[sequence] = shortcut

    def apply_visual_properties(self, properties: VisualProperties) -> None:
        self._visual = properties
        for overlay_id, widget in list(self._overlays.items()):
            spec = self._specs.get(overlay_id)
            if spec is not None and shiboken6.isValid(widget):
                self._render(overlay_id, widget, spec)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def shutdown(self) -> None:
        if self._shut_down:
            return
        self._shut_down = True
        self._idle_timer.stop()
        self._bus.publish(EditorShutdown())
        for overlay_id in list(self._overlays):
            self.destroy_overlay(overlay_id)
        QToolTip.hideText()

    def eventFilter(self, obj: Any, event: Any) -> bool:  # type: ignore[override]
        if obj is self._editor:
            event_type = event.type()
            if event_type == QEvent.Type.KeyPress:
                self._on_key_press(event)
            elif event_type in _VISUAL_EVENT_TYPES:
                self._bus.publish(VisualPropertiesChanged(reason=_VISUAL_EVENT_TYPES[event_type]))
        return super().eventFilter(obj, event)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _widget(self, overlay_id: int) -> QListWidget:
        widget = self._overlays.get(overlay_id)
        if widget is None or not shiboken6.isValid(widget):
            raise KeyError(f"Unknown overlay {overlay_id}")
        return widget

    def _cell_size(self) -> tuple[int, int]:
        metrics = QFontMetrics(self._editor.font())
        return max(1, metrics.horizontalAdvance("M")), max(1, metrics.height())

    def _render(self, overlay_id: int, widget: QListWidget, spec: OverlaySpec) -> None:
        self._specs[overlay_id] = spec
        widget.clear()
        base_font = self._editor.font()
        for text, group in zip(spec.lines, spec.highlights):
            item = QListWidgetItem(text)
            style = self._style_for_group(group)
            if style.fg is not None:
                item.setForeground(QColor(color_to_hex(style.fg)))
            if style.bg is not None:
                item.setBackground(QColor(color_to_hex(style.bg)))
            if style.bold or style.italic:
                font = QFont(base_font)
                font.setBold(style.bold)
                font.setItalic(style.italic)
                item.setFont(font)
            widget.addItem(item)

        cell_width, cell_height = self._cell_size()
        edge = 0 if spec.border == "none" else 2
        widget.setGeometry(
            spec.col * cell_width,
            spec.row * cell_height,
            (spec.width + edge) * cell_width,
            (spec.height + edge) * cell_height,
        )
        widget.setStyleSheet(self._frame_css(spec))
        self._restack()

    def _frame_css(self, spec: OverlaySpec) -> str:
        border_style = self._visual.highlights.get("border", HighlightStyle())
        color = color_to_hex(border_style.fg) if border_style.fg is not None else "palette(mid)"
        background = QColor(self._editor.palette().color(self._editor.backgroundRole()))
        if border_style.bg is not None:
            background = QColor(color_to_hex(border_style.bg))
        alpha = round(255 * (100 - spec.winblend) / 100)
        border = _BORDER_CSS.get(spec.border, _BORDER_CSS["single"]).format(color=color)
        return (
            "QListWidget {"
            f" background-color: rgba({background.red()}, {background.green()}, {background.blue()}, {alpha});"
            f" border: {border};"
            " padding: 0px;"
            " }"
        )

    def _style_for_group(self, group: str) -> HighlightStyle:
        key = _GROUP_STYLE_KEYS.get(group, SEVERITY_NAMES[Severity.INFO].lower())
        return self._visual.highlights.get(key, HighlightStyle())

    def _restack(self) -> None:
        ordered = sorted(self._specs.items(), key=lambda entry: entry[1].zindex)
        for overlay_id, _spec in ordered:
            widget = self._overlays.get(overlay_id)
            if widget is not None and shiboken6.isValid(widget):
                widget.raise_()

    def _on_overlay_destroyed(self, overlay_id: int) -> None:
        if self._overlays.pop(overlay_id, None) is None:
            return
        self._specs.pop(overlay_id, None)
        LOGGER.debug("Overlay %s destroyed outside the panel", overlay_id)
        self._bus.publish(OverlayDismissed(handle_id=overlay_id))

    def _on_key_press(self, event: Any) -> None:
        if event.key() == Qt.Key.Key_Escape:
            self._mode = EditingMode.NORMAL
            return
        modifiers = event.modifiers()
        if modifiers & (Qt.KeyboardModifier.ControlModifier | Qt.KeyboardModifier.AltModifier):
            return
        text = event.text()
        if text and (text.isprintable() or text in "\r\n\t\b"):
            self._mode = EditingMode.INSERT
            self._restart_idle_timer()

    def _restart_idle_timer(self) -> None:
        if not self._shut_down:
            self._idle_timer.start()

    def _on_idle(self) -> None:
        self._mode = EditingMode.NORMAL
        if self._current is not None:
            self._bus.publish(CursorIdle(document_id=self._current))


__all__ = ["DEFAULT_IDLE_MS", "QtEditorHost", "qt_key_sequence"]
