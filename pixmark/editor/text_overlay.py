"""
Floating text editor for the PixMark canvas.

While a text edit session is open, the annotation itself is hidden and
this overlay sits over it in screen space: a small control bar (font
size, color swatches) above a plain-text editor whose width tracks the
annotation's wrap width, and a resize handle on its right edge.

Enter commits, Shift+Enter starts a new paragraph, and the editor losing
focus commits. The controls never take focus, so using them keeps the
session open.
"""

from typing import List, Optional

from PySide6.QtCore import QPointF, Qt, Signal
from PySide6.QtGui import QColor, QFocusEvent, QKeyEvent, QMouseEvent, QPalette, QTextCursor
from PySide6.QtWidgets import (
    QApplication,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QWidget,
)

from pixmark.editor.engine import AnnotationEngine
from pixmark.editor.text_edit import TextEditSession
from pixmark.editor.text_layout import make_font
from pixmark.services.logging_service import get_logger


CONTROL_BAR_HEIGHT = 28
HANDLE_WIDTH = 8
EDITOR_PADDING = 4


class _CommitTextEdit(QPlainTextEdit):
    """Plain-text editor that asks to commit on Enter or focus loss."""

    commit_requested = Signal()
    focus_lost = Signal(object)  # Qt.FocusReason

    def keyPressEvent(self, event: QKeyEvent) -> None:
        key = event.key()
        if key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            if event.modifiers() & Qt.KeyboardModifier.ShiftModifier:
                self.insertPlainText("\n")
            else:
                self.commit_requested.emit()
            event.accept()
            return
        if key == Qt.Key.Key_Escape:
            self.commit_requested.emit()
            event.accept()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event: QFocusEvent) -> None:
        super().focusOutEvent(event)
        self.focus_lost.emit(event.reason())


class _ResizeHandle(QWidget):
    """Vertical grip that changes the wrap width by dragging horizontally."""

    def __init__(self, engine: AnnotationEngine, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._engine = engine
        self.setFixedWidth(HANDLE_WIDTH)
        self.setCursor(Qt.CursorShape.SizeHorCursor)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.setStyleSheet("background-color: #3b82f6; border-radius: 3px;")

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._engine.begin_edit_resize(event.globalPosition().x())
            event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        self._engine.resize_edit(event.globalPosition().x())
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        self._engine.end_edit_resize()
        event.accept()


class TextEditOverlay(QFrame):
    """
    Screen-space editor for the open text edit session.

    Args:
        engine: The engine that owns the session.
        colors: Swatch colors offered in the control bar.
        parent: The canvas widget to float over.
    """

    def __init__(
        self,
        engine: AnnotationEngine,
        colors: List[str],
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._engine = engine
        self._colors = colors
        self._syncing = False

        self._setup_ui()
        self._connect_signals()
        self.hide()

    def _setup_ui(self) -> None:
        self.setFrameShape(QFrame.Shape.NoFrame)
        self.setStyleSheet("TextEditOverlay { background: transparent; }")

        # Control bar
        self._controls = QFrame(self)
        self._controls.setFixedHeight(CONTROL_BAR_HEIGHT)
        self._controls.setStyleSheet(
            "QFrame { background-color: #262626; border-radius: 4px; }"
            "QPushButton { color: #e5e5e5; border: none; min-width: 20px; }"
            "QLabel { color: #a3a3a3; }"
        )
        bar = QHBoxLayout(self._controls)
        bar.setContentsMargins(4, 2, 4, 2)
        bar.setSpacing(4)

        self._shrink_btn = self._make_button("−", "Smaller text")
        self._shrink_btn.clicked.connect(lambda: self._engine.change_edit_font_size(-1))
        bar.addWidget(self._shrink_btn)

        self._size_label = QLabel("", self._controls)
        bar.addWidget(self._size_label)

        self._grow_btn = self._make_button("+", "Larger text")
        self._grow_btn.clicked.connect(lambda: self._engine.change_edit_font_size(1))
        bar.addWidget(self._grow_btn)

        self._swatches: List[QPushButton] = []
        for color in self._colors:
            swatch = self._make_button("", color)
            swatch.setFixedSize(16, 16)
            swatch.setStyleSheet(
                f"QPushButton {{ background-color: {color}; border-radius: 8px; }}"
            )
            swatch.clicked.connect(lambda checked=False, c=color: self._engine.set_edit_color(c))
            bar.addWidget(swatch)
            self._swatches.append(swatch)

        # Editor
        self._editor = _CommitTextEdit(self)
        self._editor.setFrameShape(QFrame.Shape.NoFrame)
        self._editor.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self._editor.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self._editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.WidgetWidth)
        self._editor.document().setDocumentMargin(0)
        self._editor.setStyleSheet(
            "QPlainTextEdit { background-color: rgba(0, 0, 0, 40);"
            " border: 1px dashed #3b82f6; padding: 3px; }"
        )

        self._handle = _ResizeHandle(self._engine, self)

    def _make_button(self, text: str, tooltip: str) -> QPushButton:
        button = QPushButton(text, self._controls)
        button.setToolTip(tooltip)
        button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        button.setCursor(Qt.CursorShape.PointingHandCursor)
        return button

    def _connect_signals(self) -> None:
        self._editor.textChanged.connect(self._on_text_changed)
        self._editor.commit_requested.connect(self._engine.commit_text_edit)
        self._editor.focus_lost.connect(self._on_focus_lost)

        self._engine.text_edit_started.connect(self._on_session_started)
        self._engine.text_edit_changed.connect(self.sync)
        self._engine.text_edit_finished.connect(self._on_session_finished)
        self._engine.changed.connect(self.sync)

    @property
    def editor(self) -> QPlainTextEdit:
        return self._editor

    # ─── Session Lifecycle ────────────────────────────────────────────────

    def _on_session_started(self, session: TextEditSession) -> None:
        self._logger.debug(f"Editing text {session.annotation_id} (new={session.is_new})")
        self._syncing = True
        self._editor.setPlainText(session.text)
        self._syncing = False

        self.sync()
        self.show()
        self.raise_()
        self._editor.setFocus(Qt.FocusReason.OtherFocusReason)
        self._editor.moveCursor(QTextCursor.MoveOperation.End)

    def _on_session_finished(self) -> None:
        self.hide()
        parent = self.parentWidget()
        if parent is not None:
            parent.setFocus()

    def _on_focus_lost(self, reason: Qt.FocusReason) -> None:
        # A click on the canvas reaches the active tool, which commits
        if (
            reason == Qt.FocusReason.MouseFocusReason
            and QApplication.focusWidget() is self.parentWidget()
        ):
            return
        self._engine.commit_text_edit()

    def _on_text_changed(self) -> None:
        if self._syncing:
            return
        self._engine.set_edit_text(self._editor.toPlainText())

    # ─── Layout ───────────────────────────────────────────────────────────

    def sync(self, *_args) -> None:
        """Match the overlay's geometry, font and color to the session."""
        session = self._engine.text_session
        if session is None:
            return

        annotation = session.annotation
        zoom = self._engine.zoom
        origin = self._engine.viewport.to_screen(QPointF(annotation.x, annotation.y))

        font = make_font(annotation.font_size * zoom)
        self._editor.setFont(font)
        palette = self._editor.palette()
        palette.setColor(QPalette.ColorRole.Text, QColor(annotation.color))
        self._editor.setPalette(palette)

        self._size_label.setText(f"{annotation.font_size:g}px")

        editor_width = int(round(annotation.wrap_width * zoom)) + 2 * EDITOR_PADDING
        line_count = max(1, len(annotation.lines()))
        editor_height = int(round(line_count * annotation.line_height * zoom)) + 2 * EDITOR_PADDING

        controls_width = max(self._controls.sizeHint().width(), 0)
        total_width = max(editor_width + HANDLE_WIDTH, controls_width)

        self._controls.setGeometry(0, 0, controls_width, CONTROL_BAR_HEIGHT)
        self._editor.setGeometry(0, CONTROL_BAR_HEIGHT, editor_width, editor_height)
        self._handle.setGeometry(
            editor_width, CONTROL_BAR_HEIGHT, HANDLE_WIDTH, editor_height
        )
        self.setGeometry(
            int(round(origin.x())) - EDITOR_PADDING,
            int(round(origin.y())) - CONTROL_BAR_HEIGHT - EDITOR_PADDING,
            total_width,
            CONTROL_BAR_HEIGHT + editor_height,
        )
