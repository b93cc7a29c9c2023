"""
Tool framework and implementations for the PixMark editor.

Each tool turns pointer gestures into engine operations. A gesture lives
in a DragSession that the engine creates on pointer-down and drops on
pointer-up (or when the pointer leaves the surface); tools keep their
per-gesture state on that session rather than on themselves.

Tools:
- SelectTool: Select and drag annotations; pan the view on empty space
- RectangleTool: Draw rectangle outlines
- ArrowTool: Draw arrows
- TextTool: Place a text block and open a text edit session
- EraseTool: Draw destructive erase strokes
- ZoomTool: Vertical drag zooms the view
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Type

from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QColor

from pixmark.editor.annotations import (
    AnnotationBase,
    ArrowAnnotation,
    EraseStroke,
    RectangleAnnotation,
    TextAnnotation,
)
from pixmark.editor.viewport import zoom_from_drag
from pixmark.services.logging_service import get_logger

if TYPE_CHECKING:
    from pixmark.editor.engine import AnnotationEngine


class ToolType(Enum):
    """Enum for tool modes."""
    SELECT = "select"
    RECTANGLE = "rectangle"
    ARROW = "arrow"
    TEXT = "text"
    ERASE = "erase"
    ZOOM = "zoom"


@dataclass
class DragSession:
    """
    One pointer gesture, from pointer-down to pointer-up.

    Attributes:
        start_screen: Pointer-down position in screen coordinates.
        start_world: Pointer-down position in world coordinates.
        start_zoom: View zoom at pointer-down.
        start_offset: View pan offset at pointer-down.
        annotation_id: Annotation being dragged, if any.
        annotation_origin: That annotation's (x, y) at pointer-down.
    """

    start_screen: QPointF
    start_world: QPointF
    start_zoom: float
    start_offset: QPointF
    annotation_id: Optional[str] = None
    annotation_origin: Optional[QPointF] = None


class ToolBase(ABC):
    """
    Base class for all tools.

    Positions handed to tools are screen coordinates; tools convert
    through the engine's viewport when they need world coordinates.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def tool_type(self) -> ToolType:
        """Return the type of this tool."""

    @property
    @abstractmethod
    def cursor(self) -> Qt.CursorShape:
        """Return the cursor to use when this tool is active."""

    @abstractmethod
    def on_mouse_press(self, session: DragSession, engine: "AnnotationEngine") -> None:
        """Handle pointer-down. The session is fresh."""

    def on_mouse_move(
        self, session: DragSession, pos: QPointF, engine: "AnnotationEngine"
    ) -> None:
        """Handle pointer-move while the pointer is down."""

    def on_mouse_release(self, session: DragSession, engine: "AnnotationEngine") -> None:
        """Handle pointer-up (or the pointer leaving the surface)."""


class SelectTool(ToolBase):
    """
    Select/move tool.

    - Press on an annotation: select it and start dragging it
    - Press on empty space: clear the selection
    - Drag with a selection: move the selected annotation
    - Drag without a selection: pan the view
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.SELECT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.SizeAllCursor

    def on_mouse_press(self, session: DragSession, engine: "AnnotationEngine") -> None:
        hit = engine.hit_test(session.start_world)

        if hit is not None:
            engine.select(hit.id)
            session.annotation_id = hit.id
            session.annotation_origin = QPointF(hit.x, hit.y)
        else:
            engine.select(None)

    def on_mouse_move(
        self, session: DragSession, pos: QPointF, engine: "AnnotationEngine"
    ) -> None:
        if session.annotation_id is not None and session.annotation_origin is not None:
            viewport = engine.viewport
            dx = viewport.to_world_distance(pos.x() - session.start_screen.x())
            dy = viewport.to_world_distance(pos.y() - session.start_screen.y())
            engine.move_annotation(
                session.annotation_id,
                session.annotation_origin.x() + dx,
                session.annotation_origin.y() + dy,
            )
        elif engine.selected_id is None:
            delta = pos - session.start_screen
            engine.set_offset(session.start_offset + delta)


class ShapeTool(ToolBase):
    """
    Drag-to-draw tool for box-shaped annotations.

    The draft spans from the pointer-down anchor to the current pointer
    position. A draft with zero width and height is dropped on release.
    """

    annotation_class: Type[AnnotationBase] = RectangleAnnotation

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.CrossCursor

    def on_mouse_press(self, session: DragSession, engine: "AnnotationEngine") -> None:
        engine.select(None)

    def on_mouse_move(
        self, session: DragSession, pos: QPointF, engine: "AnnotationEngine"
    ) -> None:
        world = engine.viewport.to_world(pos)
        anchor = session.start_world
        draft = engine.draft
        if draft is None:
            draft = self.annotation_class(anchor.x(), anchor.y(), color=QColor(engine.color))
        draft.set_extent(world.x() - anchor.x(), world.y() - anchor.y())
        engine.set_draft(draft)

    def on_mouse_release(self, session: DragSession, engine: "AnnotationEngine") -> None:
        draft = engine.take_draft()
        if draft is None:
            return
        if draft.is_degenerate:
            self._logger.debug("Discarded zero-size draft")
            return
        engine.add_annotation(draft)


class RectangleTool(ShapeTool):
    """Tool for drawing rectangle outlines."""

    annotation_class = RectangleAnnotation

    @property
    def tool_type(self) -> ToolType:
        return ToolType.RECTANGLE


class ArrowTool(ShapeTool):
    """Tool for drawing arrows from the press point to the release point."""

    annotation_class = ArrowAnnotation

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ARROW


class TextTool(ToolBase):
    """
    Text tool.

    A press with no edit session open places a new text block at the
    press point and opens an edit session on it. A press while a session
    is open only finishes that session.
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.TEXT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.IBeamCursor

    def on_mouse_press(self, session: DragSession, engine: "AnnotationEngine") -> None:
        if engine.text_session is not None:
            engine.commit_text_edit()
            return

        point = session.start_world
        annotation = TextAnnotation(
            point.x(),
            point.y(),
            text="",
            font_size=engine.default_font_size(),
            color=QColor(engine.color),
        )
        engine.begin_text_edit(annotation, is_new=True)


class EraseTool(ToolBase):
    """
    Eraser tool - freehand strokes that clear everything drawn before them.

    A stroke with fewer than two points (a click without movement) is
    dropped on release.
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ERASE

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.CrossCursor

    def on_mouse_press(self, session: DragSession, engine: "AnnotationEngine") -> None:
        engine.select(None)
        engine.set_draft(EraseStroke([session.start_world], engine.eraser_size))

    def on_mouse_move(
        self, session: DragSession, pos: QPointF, engine: "AnnotationEngine"
    ) -> None:
        draft = engine.draft
        if isinstance(draft, EraseStroke):
            draft.add_point(engine.viewport.to_world(pos))
            engine.set_draft(draft)

    def on_mouse_release(self, session: DragSession, engine: "AnnotationEngine") -> None:
        draft = engine.take_draft()
        if not isinstance(draft, EraseStroke):
            return
        if len(draft.points) < 2:
            self._logger.debug("Discarded single-point erase stroke")
            return
        engine.add_annotation(draft)


class ZoomTool(ToolBase):
    """
    Zoom tool - drag up to zoom in, down to zoom out.

    The view updates live during the drag; there is nothing to commit.
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ZOOM

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.SizeVerCursor

    def on_mouse_press(self, session: DragSession, engine: "AnnotationEngine") -> None:
        engine.commit_text_edit()

    def on_mouse_move(
        self, session: DragSession, pos: QPointF, engine: "AnnotationEngine"
    ) -> None:
        delta_y = session.start_screen.y() - pos.y()
        engine.set_zoom(zoom_from_drag(session.start_zoom, delta_y))


def create_tool(tool_type: ToolType) -> ToolBase:
    """
    Factory function to create tools by type.

    Args:
        tool_type: The type of tool to create.

    Returns:
        A new instance of the requested tool.
    """
    tool_classes = {
        ToolType.SELECT: SelectTool,
        ToolType.RECTANGLE: RectangleTool,
        ToolType.ARROW: ArrowTool,
        ToolType.TEXT: TextTool,
        ToolType.ERASE: EraseTool,
        ToolType.ZOOM: ZoomTool,
    }

    if tool_type not in tool_classes:
        raise ValueError(f"Unknown tool type: {tool_type}")

    return tool_classes[tool_type]()
