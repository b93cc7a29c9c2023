"""
Interactive view rendering.

A frame is drawn into an offscreen ARGB layer the size of the surface:
the base image, every stored annotation in store order, then the draft.
Erase strokes clear pixels of that layer only, so the canvas background
shows through and anything painted after the stroke is unaffected.
"""

from typing import Iterable, Optional

from PySide6.QtCore import QRectF, QSize, Qt
from PySide6.QtGui import QColor, QImage, QPainter, QPen

from pixmark.editor.annotations import AnnotationBase, StrokeMetrics
from pixmark.editor.viewport import ViewportTransform


SELECTION_COLOR = QColor("#3b82f6")
SELECTION_WIDTH = 2.0  # screen pixels
SELECTION_DASH = 6.0
SELECTION_GAP = 3.0


class Renderer:
    """Draws the editor surface from the current engine state."""

    def render(
        self,
        painter: QPainter,
        viewport: ViewportTransform,
        image: QImage,
        annotations: Iterable[AnnotationBase],
        draft: Optional[AnnotationBase] = None,
        selected: Optional[AnnotationBase] = None,
        hidden_id: Optional[str] = None,
    ) -> None:
        """
        Paint one frame.

        Args:
            painter: Painter on a transparent ARGB device.
            viewport: The view transform for this frame.
            image: The base image, drawn at its native size.
            annotations: Stored annotations in store order.
            draft: The in-progress annotation, drawn last.
            selected: Annotation to outline.
            hidden_id: Annotation not to draw (the one being text-edited).
                When set, no selection outline is drawn either.
        """
        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setTransform(viewport.qtransform())

        painter.drawImage(0, 0, image)

        metrics = StrokeMetrics.for_zoom(viewport.zoom)
        for annotation in annotations:
            if annotation.id != hidden_id:
                annotation.paint(painter, metrics)
        if draft is not None:
            draft.paint(painter, metrics)

        if selected is not None and hidden_id is None:
            self._draw_selection_outline(painter, selected, viewport.zoom)

        painter.restore()

    def render_to_image(
        self,
        size: QSize,
        viewport: ViewportTransform,
        image: QImage,
        annotations: Iterable[AnnotationBase],
        draft: Optional[AnnotationBase] = None,
        selected: Optional[AnnotationBase] = None,
        hidden_id: Optional[str] = None,
    ) -> QImage:
        """Render a frame into a new transparent layer of the given size."""
        layer = QImage(size, QImage.Format.Format_ARGB32_Premultiplied)
        layer.fill(Qt.GlobalColor.transparent)
        if layer.isNull():
            return layer

        painter = QPainter(layer)
        self.render(painter, viewport, image, annotations, draft, selected, hidden_id)
        painter.end()
        return layer

    def _draw_selection_outline(
        self, painter: QPainter, annotation: AnnotationBase, zoom: float
    ) -> None:
        """Dashed outline whose width stays constant in screen pixels."""
        width = max(SELECTION_WIDTH / zoom, 1.0)
        pen = QPen(SELECTION_COLOR)
        pen.setWidthF(width)
        # Dash pattern is in units of the pen width
        pen.setDashPattern([(SELECTION_DASH / zoom) / width, (SELECTION_GAP / zoom) / width])

        painter.save()
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(QRectF(annotation.bounding_rect))
        painter.restore()
