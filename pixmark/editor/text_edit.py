"""
Live text edit session.

A session works on a private copy of a text annotation. The copy is
written back to the store only when the session is committed, which the
engine does on focus loss, on Enter, or when another session, tool or
selection takes over.
"""

from dataclasses import dataclass
from typing import Optional

from PySide6.QtGui import QColor

from pixmark.editor.annotations import TextAnnotation


MIN_FONT_SIZE = 8.0
FONT_SIZE_STEP = 2.0
MIN_WRAP_WIDTH = 50.0


@dataclass
class ResizeDrag:
    """Wrap-width resize in progress, started from a screen x position."""

    start_screen_x: float
    start_width: float


class TextEditSession:
    """
    The single open text edit.

    Args:
        annotation: The annotation being edited. The session keeps a
            clone; the caller's object is not touched.
        is_new: True if the annotation is not in the store yet.
    """

    def __init__(self, annotation: TextAnnotation, is_new: bool) -> None:
        self._annotation = annotation.clone()
        self.is_new = is_new
        self._resize: Optional[ResizeDrag] = None

    @property
    def annotation(self) -> TextAnnotation:
        return self._annotation

    @property
    def annotation_id(self) -> str:
        return self._annotation.id

    @property
    def text(self) -> str:
        return self._annotation.text

    @property
    def is_empty(self) -> bool:
        return not self._annotation.text.strip()

    def set_text(self, text: str) -> None:
        self._annotation.text = text

    def set_font_size(self, font_size: float) -> None:
        self._annotation.font_size = max(MIN_FONT_SIZE, font_size)

    def change_font_size(self, steps: int) -> None:
        """Grow (positive) or shrink (negative) the font by whole steps."""
        self.set_font_size(self._annotation.font_size + steps * FONT_SIZE_STEP)

    def set_color(self, color: QColor) -> None:
        self._annotation.color = QColor(color)

    def set_wrap_width(self, width: float) -> None:
        self._annotation.wrap_width = max(MIN_WRAP_WIDTH, width)

    # ─── Resize handle ────────────────────────────────────────────────────

    @property
    def resizing(self) -> bool:
        return self._resize is not None

    def begin_resize(self, screen_x: float) -> None:
        self._resize = ResizeDrag(screen_x, self._annotation.wrap_width)

    def resize_to(self, screen_x: float, zoom: float) -> None:
        """
        Apply the resize handle position.

        The screen delta is divided by the zoom so the wrap width changes
        in world units.
        """
        if self._resize is None:
            return
        delta = (screen_x - self._resize.start_screen_x) / zoom
        self.set_wrap_width(self._resize.start_width + delta)

    def end_resize(self) -> None:
        self._resize = None
