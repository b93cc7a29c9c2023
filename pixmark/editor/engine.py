"""
Annotation engine for the PixMark editor.

The engine owns all mutable editor state and is only touched from the
Qt event thread:
- The base image and its source name
- The annotation store, the draft and the selection
- The view (zoom, pan offset, surface size)
- The active tool and the current pointer gesture
- The single text edit session

Widgets forward pointer and keyboard input here and repaint when the
engine emits `changed`.
"""

from typing import Callable, Dict, Optional

from PySide6.QtCore import QObject, QPointF, QSize, QSizeF, Qt, Signal
from PySide6.QtGui import QColor, QImage

from pixmark.editor.annotations import AnnotationBase, TextAnnotation, DEFAULT_COLOR
from pixmark.editor.flattener import ExportFormat, ExportResult, Flattener
from pixmark.editor.hit_testing import find_topmost
from pixmark.editor.imaging import DecodedImage, decode_image
from pixmark.editor.renderer import Renderer
from pixmark.editor.store import AnnotationStore
from pixmark.editor.text_edit import TextEditSession
from pixmark.editor.tools import DragSession, ToolBase, ToolType, create_tool
from pixmark.editor.viewport import ViewportTransform, clamp_zoom
from pixmark.errors import ExportError, ImageDecodeError, OperationPendingError
from pixmark.services.config_service import MAX_ERASER_SIZE, MIN_ERASER_SIZE
from pixmark.services.logging_service import get_logger


MIN_DEFAULT_FONT_SIZE = 16.0
# Default font size as a share of the image width
FONT_SIZE_IMAGE_RATIO = 0.02

DELETE_KEYS = (Qt.Key.Key_Delete, Qt.Key.Key_Backspace)


class AnnotationEngine(QObject):
    """
    Interactive markup state machine.

    Signals:
        changed: Anything visible changed; the surface should repaint.
        selection_changed: Selected annotation (or None).
        zoom_changed: New zoom factor.
        image_changed: A new image was loaded or the image was closed.
        tool_changed: New ToolType.
        text_edit_started: A TextEditSession was opened.
        text_edit_changed: The open TextEditSession changed.
        text_edit_finished: The text edit session was committed or dropped.
        error_occurred: User-visible error message.
    """

    changed = Signal()
    selection_changed = Signal(object)
    zoom_changed = Signal(float)
    image_changed = Signal()
    tool_changed = Signal(object)
    text_edit_started = Signal(object)
    text_edit_changed = Signal(object)
    text_edit_finished = Signal()
    error_occurred = Signal(str)

    def __init__(
        self,
        color: str = DEFAULT_COLOR,
        eraser_size: int = 20,
        flattener: Optional[Flattener] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        # Image
        self._image: Optional[QImage] = None
        self._source_name: Optional[str] = None

        # Annotations
        self._store = AnnotationStore()
        self._draft: Optional[AnnotationBase] = None
        self._selected_id: Optional[str] = None
        self._text_session: Optional[TextEditSession] = None

        # View
        self._zoom: float = 1.0
        self._offset = QPointF(0, 0)
        self._surface_size = QSizeF(0, 0)

        # Interaction
        self._tools: Dict[ToolType, ToolBase] = {}
        self._tool: ToolBase = self._get_tool(ToolType.SELECT)
        self._drag: Optional[DragSession] = None
        self._color = QColor(color)
        self._eraser_size = self._clamp_eraser(eraser_size)

        # One-shot operations
        self._loading = False
        self._exporting = False

        self._renderer = Renderer()
        self._flattener = flattener or Flattener()

    # ─── State Access ─────────────────────────────────────────────────────

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def has_image(self) -> bool:
        return self._image is not None

    @property
    def image_size(self) -> tuple:
        """Return (width, height) of the image."""
        if self._image is not None:
            return (self._image.width(), self._image.height())
        return (0, 0)

    @property
    def source_name(self) -> Optional[str]:
        return self._source_name

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def draft(self) -> Optional[AnnotationBase]:
        return self._draft

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_annotation(self) -> Optional[AnnotationBase]:
        return self._store.get(self._selected_id)

    @property
    def text_session(self) -> Optional[TextEditSession]:
        return self._text_session

    @property
    def pointer_down(self) -> bool:
        return self._drag is not None

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def exporting(self) -> bool:
        return self._exporting

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def offset(self) -> QPointF:
        return QPointF(self._offset)

    @property
    def viewport(self) -> ViewportTransform:
        """The current view transform, rebuilt from the view state."""
        width, height = self.image_size
        return ViewportTransform(
            zoom=self._zoom,
            offset_x=self._offset.x(),
            offset_y=self._offset.y(),
            surface_width=self._surface_size.width(),
            surface_height=self._surface_size.height(),
            image_width=width,
            image_height=height,
        )

    @property
    def color(self) -> QColor:
        return QColor(self._color)

    def set_color(self, color) -> None:
        """Set the color for new annotations."""
        self._color = QColor(color)

    @property
    def eraser_size(self) -> int:
        return self._eraser_size

    def set_eraser_size(self, size: int) -> None:
        self._eraser_size = self._clamp_eraser(size)

    @staticmethod
    def _clamp_eraser(size: int) -> int:
        return max(MIN_ERASER_SIZE, min(MAX_ERASER_SIZE, int(size)))

    def default_font_size(self) -> float:
        """Font size for new text blocks, scaled with the image width."""
        width, _ = self.image_size
        return max(MIN_DEFAULT_FONT_SIZE, width * FONT_SIZE_IMAGE_RATIO)

    # ─── Image Management ─────────────────────────────────────────────────

    def begin_load(self) -> None:
        """
        Mark an image load as pending. While pending, no new gesture can
        start.

        Raises:
            OperationPendingError: If a load is already pending.
        """
        if self._loading:
            raise OperationPendingError("An image is already loading")
        self._loading = True

    def cancel_load(self) -> None:
        """Clear the pending-load flag without touching any other state."""
        self._loading = False

    def load_image(self, data: bytes, source_name: Optional[str] = None) -> bool:
        """
        Decode bytes and replace the current image.

        On success the annotations, draft, selection, text edit and view
        are reset. On failure nothing changes and error_occurred is
        emitted.

        Returns:
            True if the image was loaded.
        """
        self._loading = True
        try:
            decoded = decode_image(data)
        except ImageDecodeError as e:
            self._logger.warning(f"Image decode failed for {source_name!r}: {e}")
            self.error_occurred.emit(f"Could not load image: {e}")
            return False
        finally:
            self._loading = False

        self._reset(decoded, source_name)
        self._logger.info(f"Image loaded: {decoded.width}x{decoded.height}")
        return True

    def close_image(self) -> None:
        """Drop the image and everything drawn on it."""
        self._reset(None, None)
        self._logger.info("Image closed")

    def _reset(self, decoded: Optional[DecodedImage], source_name: Optional[str]) -> None:
        had_session = self._text_session is not None

        self._image = decoded.image if decoded is not None else None
        self._source_name = source_name
        self._store.clear()
        self._draft = None
        self._drag = None
        self._text_session = None
        self._selected_id = None
        self._zoom = 1.0
        self._offset = QPointF(0, 0)

        if had_session:
            self.text_edit_finished.emit()
        self.selection_changed.emit(None)
        self.zoom_changed.emit(self._zoom)
        self.image_changed.emit()
        self.changed.emit()

    # ─── View ─────────────────────────────────────────────────────────────

    def set_surface_size(self, width: float, height: float) -> None:
        self._surface_size = QSizeF(width, height)
        self.changed.emit()

    def set_zoom(self, zoom: float) -> None:
        """Set the zoom factor, clamped to the allowed range."""
        zoom = clamp_zoom(zoom)
        if zoom == self._zoom:
            return
        self._zoom = zoom
        self.zoom_changed.emit(zoom)
        self.changed.emit()

    @property
    def can_pan(self) -> bool:
        """Panning is only allowed with the select tool and nothing selected."""
        return self._tool.tool_type == ToolType.SELECT and self._selected_id is None

    def set_offset(self, offset: QPointF) -> bool:
        """Pan the view. Returns False if panning isn't allowed right now."""
        if not self.can_pan:
            return False
        self._offset = QPointF(offset)
        self.changed.emit()
        return True

    # ─── Tool Management ──────────────────────────────────────────────────

    def _get_tool(self, tool_type: ToolType) -> ToolBase:
        if tool_type not in self._tools:
            self._tools[tool_type] = create_tool(tool_type)
        return self._tools[tool_type]

    @property
    def active_tool(self) -> ToolBase:
        return self._tool

    @property
    def tool_type(self) -> ToolType:
        return self._tool.tool_type

    def set_tool(self, tool_type: ToolType) -> None:
        """
        Switch tool mode. Any gesture in progress is finished and any open
        text edit is committed first.
        """
        if tool_type == self._tool.tool_type:
            return

        self.pointer_release()
        self.commit_text_edit()
        self._tool = self._get_tool(tool_type)
        self._logger.debug(f"Tool changed to {tool_type.value}")
        self.tool_changed.emit(tool_type)
        self.changed.emit()

    # ─── Pointer and Keyboard Input ───────────────────────────────────────

    def pointer_press(self, pos: QPointF) -> bool:
        """
        Start a gesture at a screen position.

        Returns False (and does nothing) if a gesture is already running,
        no image is loaded, or an image load is pending.
        """
        if self._drag is not None or self._image is None or self._loading:
            return False

        self._drag = DragSession(
            start_screen=QPointF(pos),
            start_world=self.viewport.to_world(pos),
            start_zoom=self._zoom,
            start_offset=QPointF(self._offset),
        )
        self._tool.on_mouse_press(self._drag, self)
        return True

    def pointer_move(self, pos: QPointF) -> None:
        """Continue the current gesture; ignored when no gesture is running."""
        if self._drag is None:
            return
        self._tool.on_mouse_move(self._drag, QPointF(pos), self)

    def pointer_release(self) -> None:
        """Finish the current gesture; ignored when no gesture is running."""
        session = self._drag
        if session is None:
            return
        try:
            self._tool.on_mouse_release(session, self)
        finally:
            self._drag = None

    def pointer_leave(self) -> None:
        """The pointer left the surface; treated exactly like a release."""
        self.pointer_release()

    def key_press(self, key: int) -> bool:
        """
        Handle a key press.

        Returns True if the key was consumed.
        """
        if key in DELETE_KEYS and self._text_session is None and self._selected_id:
            return self.delete_selected()
        return False

    # ─── Annotation Management ────────────────────────────────────────────

    def hit_test(self, point: QPointF) -> Optional[AnnotationBase]:
        """
        Topmost selectable annotation at a world point.

        While a text edit is open, the annotation being edited is tested
        with its live geometry rather than the stored pre-edit copy.
        """
        session = self._text_session
        if session is None:
            return find_topmost(self._store, point)
        candidates = [
            session.annotation if annotation.id == session.annotation_id else annotation
            for annotation in self._store
        ]
        return find_topmost(candidates, point)

    def add_annotation(self, annotation: AnnotationBase) -> None:
        self._store.add(annotation)
        self._logger.debug(f"Added {annotation!r}")
        self.changed.emit()

    def move_annotation(self, annotation_id: str, x: float, y: float) -> bool:
        annotation = self._store.get(annotation_id)
        if annotation is None:
            return False
        annotation.move_to(x, y)
        self.changed.emit()
        return True

    def delete_annotation(self, annotation_id: str) -> bool:
        removed = self._store.remove(annotation_id)
        if removed is None:
            return False
        if self._selected_id == annotation_id:
            self._set_selection(None)
        self._logger.debug(f"Deleted {removed!r}")
        self.changed.emit()
        return True

    def delete_selected(self) -> bool:
        if self._selected_id is None:
            return False
        return self.delete_annotation(self._selected_id)

    def set_draft(self, draft: Optional[AnnotationBase]) -> None:
        self._draft = draft
        self.changed.emit()

    def take_draft(self) -> Optional[AnnotationBase]:
        """Remove and return the draft."""
        draft = self._draft
        self._draft = None
        if draft is not None:
            self.changed.emit()
        return draft

    def select(self, annotation_id: Optional[str]) -> None:
        """
        Select an annotation (or clear the selection with None).

        Any open text edit is committed first.
        """
        self.commit_text_edit()
        if annotation_id is not None and annotation_id not in self._store:
            annotation_id = None
        self._set_selection(annotation_id)

    def _set_selection(self, annotation_id: Optional[str]) -> None:
        if annotation_id == self._selected_id:
            return
        self._selected_id = annotation_id
        self.selection_changed.emit(self.selected_annotation)
        self.changed.emit()

    # ─── Text Editing ─────────────────────────────────────────────────────

    def begin_text_edit(self, annotation: TextAnnotation, is_new: bool) -> TextEditSession:
        """
        Open the text edit session, committing any previous one.

        The selection is cleared.
        """
        self.commit_text_edit()
        self._set_selection(None)

        session = TextEditSession(annotation, is_new)
        self._text_session = session
        self.text_edit_started.emit(session)
        self.changed.emit()
        return session

    def edit_selected_text(self) -> bool:
        """Reopen the selected text annotation for editing."""
        annotation = self.selected_annotation
        if not isinstance(annotation, TextAnnotation) or self._text_session is not None:
            return False
        self.begin_text_edit(annotation, is_new=False)
        return True

    def commit_text_edit(self) -> None:
        """
        Close the text edit session.

        Empty (whitespace-only) text removes the annotation. Otherwise a
        new annotation is appended and an existing one is updated at its
        original store position.
        """
        session = self._text_session
        if session is None:
            return
        self._text_session = None

        annotation = session.annotation
        if session.is_empty:
            self._store.remove(annotation.id)
            self._logger.debug(f"Removed empty text {annotation.id}")
        elif session.is_new or annotation.id not in self._store:
            self._store.add(annotation)
            self._logger.debug(f"Added {annotation!r}")
        else:
            self._store.replace(annotation)
            self._logger.debug(f"Updated {annotation!r}")

        self.text_edit_finished.emit()
        self.changed.emit()

    def _text_session_updated(self) -> None:
        self.text_edit_changed.emit(self._text_session)
        self.changed.emit()

    def set_edit_text(self, text: str) -> None:
        if self._text_session is None:
            return
        self._text_session.set_text(text)
        self._text_session_updated()

    def change_edit_font_size(self, steps: int) -> None:
        if self._text_session is None:
            return
        self._text_session.change_font_size(steps)
        self._text_session_updated()

    def set_edit_color(self, color) -> None:
        if self._text_session is None:
            return
        self._text_session.set_color(QColor(color))
        self._text_session_updated()

    def begin_edit_resize(self, screen_x: float) -> None:
        if self._text_session is not None:
            self._text_session.begin_resize(screen_x)

    def resize_edit(self, screen_x: float) -> None:
        if self._text_session is None or not self._text_session.resizing:
            return
        self._text_session.resize_to(screen_x, self._zoom)
        self._text_session_updated()

    def end_edit_resize(self) -> None:
        if self._text_session is not None:
            self._text_session.end_resize()

    # ─── Rendering and Export ─────────────────────────────────────────────

    def render_frame(self) -> QImage:
        """Render the current view into a transparent surface-sized layer."""
        size = QSize(int(self._surface_size.width()), int(self._surface_size.height()))
        if self._image is None or size.isEmpty():
            return QImage()

        hidden_id = self._text_session.annotation_id if self._text_session else None
        return self._renderer.render_to_image(
            size,
            self.viewport,
            self._image,
            self._store,
            self._draft,
            self.selected_annotation,
            hidden_id,
        )

    def export(
        self,
        fmt: ExportFormat,
        deliver: Optional[Callable[[ExportResult], None]] = None,
    ) -> Optional[ExportResult]:
        """
        Flatten and encode the image with its annotations.

        An open text edit is committed first. The result is passed to
        `deliver` only on success; failures emit error_occurred.

        Returns:
            The export result, or None on failure.
        """
        if self._exporting:
            self.error_occurred.emit("An export is already in progress")
            return None

        self._exporting = True
        try:
            self.commit_text_edit()
            if self._image is None:
                raise ExportError("No image loaded")
            result = self._flattener.export(
                self._image, self._store, fmt, self._source_name
            )
        except ExportError as e:
            self._logger.error(f"Export failed: {e}")
            self.error_occurred.emit(f"Could not export image: {e}")
            return None
        finally:
            self._exporting = False

        if deliver is not None:
            deliver(result)
        return result
