"""
Hit-testing for selection.

Every selectable kind is tested against its axis-aligned bounding box,
arrows and text included: a click in the empty part of an arrow's box
still selects the arrow. Erase strokes are never returned.
"""

from typing import Iterable, Optional

from PySide6.QtCore import QPointF

from pixmark.editor.annotations import AnnotationBase


def contains(annotation: AnnotationBase, point: QPointF) -> bool:
    """Closed-interval bounding box containment."""
    left = min(annotation.x, annotation.x + annotation.width)
    right = max(annotation.x, annotation.x + annotation.width)
    top = min(annotation.y, annotation.y + annotation.height)
    bottom = max(annotation.y, annotation.y + annotation.height)
    return left <= point.x() <= right and top <= point.y() <= bottom


def find_topmost(
    annotations: Iterable[AnnotationBase], point: QPointF
) -> Optional[AnnotationBase]:
    """
    Find the annotation under a world point.

    Args:
        annotations: Annotations in store (paint) order.
        point: The point to test, in world coordinates.

    Returns:
        The last selectable annotation containing the point, or None.
    """
    for annotation in reversed(list(annotations)):
        if annotation.selectable and contains(annotation, point):
            return annotation
    return None
