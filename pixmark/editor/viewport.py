"""
View transform for the PixMark editor canvas.

The transform is a value recomputed from (zoom, pan offset, surface size,
image size) whenever it is needed; nothing mutates a matrix incrementally.

Composition order (applied to a world point, last step first):
    translate(surface center + offset) · scale(zoom) · translate(-image center)
"""

import math
from dataclasses import dataclass

from PySide6.QtCore import QPointF
from PySide6.QtGui import QTransform


MIN_ZOOM = 0.2
MAX_ZOOM = 5.0

# Zoom change per screen pixel of vertical drag, on a log scale
ZOOM_SENSITIVITY = 0.005


def clamp_zoom(zoom: float) -> float:
    """Clamp a zoom factor to [MIN_ZOOM, MAX_ZOOM]."""
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


def zoom_from_drag(start_zoom: float, delta_y: float) -> float:
    """
    Map a vertical drag to a zoom factor.

    Args:
        start_zoom: Zoom when the drag started.
        delta_y: Screen distance dragged upwards (start y - current y).
            Positive zooms in, negative zooms out.

    Returns:
        The clamped zoom factor.
    """
    exponent = delta_y * ZOOM_SENSITIVITY
    # exp() overflows long before any real drag gets there
    exponent = max(-50.0, min(50.0, exponent))
    return clamp_zoom(start_zoom * math.exp(exponent))


@dataclass(frozen=True)
class ViewportTransform:
    """
    World (image) space <-> screen (surface) space mapping.

    Offsets are in screen units. Sizes are in pixels of their own space.
    """

    zoom: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    surface_width: float = 0.0
    surface_height: float = 0.0
    image_width: float = 0.0
    image_height: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "zoom", clamp_zoom(self.zoom))

    def _origin(self) -> QPointF:
        """Screen position of the image center."""
        return QPointF(
            self.surface_width / 2 + self.offset_x,
            self.surface_height / 2 + self.offset_y,
        )

    def to_screen(self, world: QPointF) -> QPointF:
        """Convert a world (image) point to screen coordinates."""
        origin = self._origin()
        return QPointF(
            origin.x() + self.zoom * (world.x() - self.image_width / 2),
            origin.y() + self.zoom * (world.y() - self.image_height / 2),
        )

    def to_world(self, screen: QPointF) -> QPointF:
        """Convert a screen point to world (image) coordinates."""
        origin = self._origin()
        return QPointF(
            (screen.x() - origin.x()) / self.zoom + self.image_width / 2,
            (screen.y() - origin.y()) / self.zoom + self.image_height / 2,
        )

    def to_world_distance(self, screen_distance: float) -> float:
        """Convert a screen-space length to world units."""
        return screen_distance / self.zoom

    def qtransform(self) -> QTransform:
        """The same mapping as a QTransform, for a QPainter."""
        origin = self._origin()
        transform = QTransform()
        transform.translate(origin.x(), origin.y())
        transform.scale(self.zoom, self.zoom)
        transform.translate(-self.image_width / 2, -self.image_height / 2)
        return transform
