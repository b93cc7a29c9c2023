"""
Annotation models for the PixMark editor.

Each annotation kind is its own class carrying only the fields it needs.
All geometry is stored in image (world) space; the view transform is
applied by whoever paints them. Each annotation knows how to:
- Paint itself on a QPainter already set up for world coordinates
- Report its bounding geometry
- Move and clone itself

Annotation Types:
- RectangleAnnotation: Stroked rectangle outline
- ArrowAnnotation: Shaft from (x, y) to (x + width, y + height) with arrowhead
- TextAnnotation: Word-wrapped text block with derived height
- EraseStroke: Destructive path that clears pixels drawn before it
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, List, Optional
from uuid import uuid4

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QPainter, QPainterPath, QPen

from pixmark.editor.text_layout import line_height, make_font, text_block_height, wrap_text


DEFAULT_COLOR = "#ef4444"
DEFAULT_TEXT_WIDTH = 200.0
DEFAULT_FONT_SIZE = 16.0

# Arrowhead half-angle
ARROWHEAD_ANGLE = math.pi / 6


class AnnotationKind(Enum):
    """Enum for annotation kinds."""
    RECTANGLE = auto()
    ARROW = auto()
    TEXT = auto()
    ERASE_STROKE = auto()


@dataclass(frozen=True)
class StrokeMetrics:
    """Line width and arrowhead length, in world units."""

    line_width: float = 4.0
    arrowhead_length: float = 15.0

    @classmethod
    def for_zoom(cls, zoom: float) -> "StrokeMetrics":
        """Widths for the interactive view, kept readable at any zoom."""
        return cls(
            line_width=max(4.0 / zoom, 2.0),
            arrowhead_length=max(15.0 / zoom, 8.0),
        )

    @classmethod
    def native(cls) -> "StrokeMetrics":
        """Fixed pixel widths used when flattening for export."""
        return cls()


def new_annotation_id() -> str:
    return str(uuid4())


class AnnotationBase(ABC):
    """
    Base class for all annotations.

    Geometry (x, y, width, height) is in world space. Width and height
    may be negative when a shape was dragged up or to the left.
    """

    # Whether hit-testing may return this annotation
    selectable: bool = True

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        width: float = 0.0,
        height: float = 0.0,
        color: Optional[QColor] = None,
        annotation_id: Optional[str] = None,
    ) -> None:
        self.id: str = annotation_id or new_annotation_id()
        self.color: QColor = QColor(color) if color is not None else QColor(DEFAULT_COLOR)
        self._x = float(x)
        self._y = float(y)
        self._width = float(width)
        self._height = float(height)

    @property
    @abstractmethod
    def kind(self) -> AnnotationKind:
        """Return the kind of this annotation."""

    @abstractmethod
    def paint(self, painter: QPainter, metrics: StrokeMetrics) -> None:
        """
        Paint the annotation.

        Args:
            painter: The QPainter to use (already mapped to world space).
            metrics: Line widths to draw with.
        """

    @abstractmethod
    def clone(self) -> "AnnotationBase":
        """Create a deep copy of this annotation (same id)."""

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def position(self) -> QPointF:
        return QPointF(self._x, self._y)

    @property
    def bounding_rect(self) -> QRectF:
        """Axis-aligned bounds, normalized to non-negative size."""
        return QRectF(self._x, self._y, self._width, self._height).normalized()

    @property
    def is_degenerate(self) -> bool:
        return self._width == 0 and self._height == 0

    def move_to(self, x: float, y: float) -> None:
        """Move the geometry origin to (x, y), keeping its size."""
        self._x = float(x)
        self._y = float(y)

    def set_extent(self, width: float, height: float) -> None:
        self._width = float(width)
        self._height = float(height)

    def _stroke_pen(self, metrics: StrokeMetrics) -> QPen:
        pen = QPen(self.color)
        pen.setWidthF(metrics.line_width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        return pen

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id!r}, x={self._x:g}, y={self._y:g}, "
            f"width={self._width:g}, height={self._height:g})"
        )


class RectangleAnnotation(AnnotationBase):
    """Rectangle outline."""

    @property
    def kind(self) -> AnnotationKind:
        return AnnotationKind.RECTANGLE

    def paint(self, painter: QPainter, metrics: StrokeMetrics) -> None:
        painter.save()
        painter.setPen(self._stroke_pen(metrics))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(self.bounding_rect)
        painter.restore()

    def clone(self) -> "RectangleAnnotation":
        return RectangleAnnotation(
            self._x, self._y, self._width, self._height, QColor(self.color), self.id
        )


class ArrowAnnotation(AnnotationBase):
    """
    Arrow along the geometry diagonal.

    The shaft runs from (x, y) to (x + width, y + height); the head sits
    at the end point, computed from the shaft angle.
    """

    @property
    def kind(self) -> AnnotationKind:
        return AnnotationKind.ARROW

    @property
    def start(self) -> QPointF:
        return QPointF(self._x, self._y)

    @property
    def end(self) -> QPointF:
        return QPointF(self._x + self._width, self._y + self._height)

    def arrowhead_points(self, length: float) -> List[QPointF]:
        """The two barb end points of the arrowhead."""
        angle = math.atan2(self._height, self._width)
        tip = self.end
        return [
            QPointF(
                tip.x() - length * math.cos(angle - ARROWHEAD_ANGLE),
                tip.y() - length * math.sin(angle - ARROWHEAD_ANGLE),
            ),
            QPointF(
                tip.x() - length * math.cos(angle + ARROWHEAD_ANGLE),
                tip.y() - length * math.sin(angle + ARROWHEAD_ANGLE),
            ),
        ]

    def paint(self, painter: QPainter, metrics: StrokeMetrics) -> None:
        tip = self.end
        left, right = self.arrowhead_points(metrics.arrowhead_length)

        path = QPainterPath()
        path.moveTo(self.start)
        path.lineTo(tip)
        path.lineTo(left)
        path.moveTo(tip)
        path.lineTo(right)

        painter.save()
        painter.setPen(self._stroke_pen(metrics))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(path)
        painter.restore()

    def clone(self) -> "ArrowAnnotation":
        return ArrowAnnotation(
            self._x, self._y, self._width, self._height, QColor(self.color), self.id
        )


class TextAnnotation(AnnotationBase):
    """
    Word-wrapped text block.

    The wrap width is the geometry width. The height is never set
    directly: it is recomputed whenever the text, font size or width
    changes.
    """

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        text: str = "",
        font_size: float = DEFAULT_FONT_SIZE,
        width: float = DEFAULT_TEXT_WIDTH,
        color: Optional[QColor] = None,
        annotation_id: Optional[str] = None,
    ) -> None:
        super().__init__(x, y, width, 0.0, color, annotation_id)
        self._text = text
        self._font_size = float(font_size)
        self._reflow()

    @property
    def kind(self) -> AnnotationKind:
        return AnnotationKind.TEXT

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        self._text = value
        self._reflow()

    @property
    def font_size(self) -> float:
        return self._font_size

    @font_size.setter
    def font_size(self, value: float) -> None:
        self._font_size = float(value)
        self._reflow()

    @property
    def wrap_width(self) -> float:
        return self._width

    @wrap_width.setter
    def wrap_width(self, value: float) -> None:
        self._width = float(value)
        self._reflow()

    @property
    def line_height(self) -> float:
        return line_height(self._font_size)

    def set_extent(self, width: float, height: float) -> None:
        # Height is derived; only the wrap width is settable
        self.wrap_width = width

    def lines(self) -> List[str]:
        return wrap_text(self._text, self._width, self._font_size)

    def _reflow(self) -> None:
        self._height = text_block_height(self._text, self._width, self._font_size)

    def paint(self, painter: QPainter, metrics: StrokeMetrics) -> None:
        font = make_font(self._font_size)
        painter.save()
        painter.setFont(font)
        painter.setPen(self.color)

        ascent = painter.fontMetrics().ascent()
        step = self.line_height
        for i, line in enumerate(self.lines()):
            painter.drawText(QPointF(self._x, self._y + i * step + ascent), line)

        painter.restore()

    def clone(self) -> "TextAnnotation":
        return TextAnnotation(
            self._x,
            self._y,
            self._text,
            self._font_size,
            self._width,
            QColor(self.color),
            self.id,
        )


class EraseStroke(AnnotationBase):
    """
    Freehand erase path.

    Painting it clears whatever was drawn before it along the path; it
    has no visible color of its own. Its geometry is the bounding box of
    the points and it is never hit-tested.
    """

    selectable = False

    def __init__(
        self,
        points: Optional[Iterable[QPointF]] = None,
        stroke_width: float = 20.0,
        annotation_id: Optional[str] = None,
    ) -> None:
        super().__init__(color=QColor(0, 0, 0), annotation_id=annotation_id)
        self._points: List[QPointF] = [QPointF(p) for p in points or []]
        self.stroke_width = float(stroke_width)
        self._update_bounds()

    @property
    def kind(self) -> AnnotationKind:
        return AnnotationKind.ERASE_STROKE

    @property
    def points(self) -> List[QPointF]:
        return list(self._points)

    def add_point(self, point: QPointF) -> None:
        self._points.append(QPointF(point))
        self._update_bounds()

    def _update_bounds(self) -> None:
        if not self._points:
            self._x = self._y = self._width = self._height = 0.0
            return
        xs = [p.x() for p in self._points]
        ys = [p.y() for p in self._points]
        self._x, self._y = min(xs), min(ys)
        self._width = max(xs) - self._x
        self._height = max(ys) - self._y

    def move_to(self, x: float, y: float) -> None:
        dx, dy = x - self._x, y - self._y
        self._points = [QPointF(p.x() + dx, p.y() + dy) for p in self._points]
        self._update_bounds()

    def set_extent(self, width: float, height: float) -> None:
        # Extent follows the points
        pass

    def paint(self, painter: QPainter, metrics: StrokeMetrics) -> None:
        if len(self._points) < 2:
            return

        path = QPainterPath()
        path.moveTo(self._points[0])
        for point in self._points[1:]:
            path.lineTo(point)

        pen = QPen(QColor(0, 0, 0, 255))
        pen.setWidthF(self.stroke_width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)

        painter.save()
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_DestinationOut)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(path)
        painter.restore()

    def clone(self) -> "EraseStroke":
        return EraseStroke(self._points, self.stroke_width, self.id)
