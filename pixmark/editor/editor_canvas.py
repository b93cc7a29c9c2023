"""
Editor canvas widget for PixMark.

The EditorCanvas is the drawing surface. It owns no editor state: it
forwards pointer and keyboard input to the AnnotationEngine, reports its
size as the surface size, and paints whatever frame the engine renders.
The text edit overlay floats on top of it.
"""

from typing import List, Optional

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor, QKeyEvent, QMouseEvent, QPainter
from PySide6.QtWidgets import QWidget

from pixmark.editor.engine import AnnotationEngine
from pixmark.editor.text_overlay import TextEditOverlay
from pixmark.editor.tools import ToolType
from pixmark.services.logging_service import get_logger


BACKGROUND_COLOR = QColor(26, 26, 26)
PLACEHOLDER_COLOR = QColor(100, 100, 100)


class EditorCanvas(QWidget):
    """
    Surface widget for the annotation engine.

    Args:
        engine: The engine to drive and draw.
        colors: Swatch colors for the text edit overlay.
        parent: Optional parent widget.
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

        self._overlay = TextEditOverlay(engine, colors, self)

        self._setup_widget()
        self._connect_signals()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(200, 200)
        self.setCursor(self._engine.active_tool.cursor)

    def _connect_signals(self) -> None:
        self._engine.changed.connect(self.update)
        self._engine.tool_changed.connect(self._on_tool_changed)

    @property
    def engine(self) -> AnnotationEngine:
        return self._engine

    @property
    def overlay(self) -> TextEditOverlay:
        return self._overlay

    def _on_tool_changed(self, tool_type: ToolType) -> None:
        self.setCursor(self._engine.active_tool.cursor)

    # ─── Event Handlers ───────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.fillRect(self.rect(), BACKGROUND_COLOR)

        if not self._engine.has_image:
            painter.setPen(PLACEHOLDER_COLOR)
            painter.drawText(
                self.rect(), Qt.AlignmentFlag.AlignCenter, "Open an image to start annotating"
            )
            painter.end()
            return

        frame = self._engine.render_frame()
        if not frame.isNull():
            painter.drawImage(0, 0, frame)
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press."""
        if event.button() == Qt.MouseButton.LeftButton:
            self.setFocus(Qt.FocusReason.MouseFocusReason)
            self._engine.pointer_press(QPointF(event.position()))
            event.accept()
        else:
            # Only left presses reach a tool, so the edit is committed here
            self._engine.commit_text_edit()
            super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move."""
        self._engine.pointer_move(QPointF(event.position()))

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release."""
        if event.button() == Qt.MouseButton.LeftButton:
            self._engine.pointer_release()
            event.accept()
        else:
            super().mouseReleaseEvent(event)

    def leaveEvent(self, event) -> None:
        """The pointer leaving the surface ends the gesture."""
        self._engine.pointer_leave()
        super().leaveEvent(event)

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press."""
        if self._engine.key_press(event.key()):
            event.accept()
            return
        super().keyPressEvent(event)

    def resizeEvent(self, event) -> None:
        """Keep the engine's surface size in step with the widget."""
        super().resizeEvent(event)
        self._engine.set_surface_size(self.width(), self.height())
