import pytest
from PySide6.QtCore import QPointF
from PySide6.QtGui import QImage

from conftest import encode_image

from pixmark.editor.annotations import (
    ArrowAnnotation,
    EraseStroke,
    RectangleAnnotation,
    TextAnnotation,
)
from pixmark.editor.tools import (
    ArrowTool,
    EraseTool,
    RectangleTool,
    SelectTool,
    TextTool,
    ToolType,
    ZoomTool,
    create_tool,
)
from pixmark.editor.viewport import MAX_ZOOM, MIN_ZOOM


def drag(engine, start, *points):
    """Press at start, move through points, release."""
    engine.pointer_press(QPointF(*start))
    for point in points:
        engine.pointer_move(QPointF(*point))
    engine.pointer_release()


@pytest.mark.parametrize(
    "tool_type, tool_class",
    [
        (ToolType.SELECT, SelectTool),
        (ToolType.RECTANGLE, RectangleTool),
        (ToolType.ARROW, ArrowTool),
        (ToolType.TEXT, TextTool),
        (ToolType.ERASE, EraseTool),
        (ToolType.ZOOM, ZoomTool),
    ],
)
def test_create_tool(tool_type, tool_class):
    tool = create_tool(tool_type)
    assert isinstance(tool, tool_class)
    assert tool.tool_type is tool_type


class TestRectangleTool:
    """Drag-to-draw rectangles."""

    def test_drag_adds_one_rectangle(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        drag(loaded_engine, (10, 10), (30, 30), (50, 50))

        items = loaded_engine.store.items
        assert len(items) == 1
        rect = items[0]
        assert isinstance(rect, RectangleAnnotation)
        assert (rect.x, rect.y, rect.width, rect.height) == (10, 10, 40, 40)
        assert loaded_engine.draft is None

    def test_draft_visible_while_dragging(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        loaded_engine.pointer_press(QPointF(10, 10))
        loaded_engine.pointer_move(QPointF(20, 25))

        assert isinstance(loaded_engine.draft, RectangleAnnotation)
        assert len(loaded_engine.store) == 0

    def test_drag_up_left_keeps_signed_extent(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        drag(loaded_engine, (50, 50), (10, 20))
        rect = loaded_engine.store.items[0]
        assert (rect.x, rect.y, rect.width, rect.height) == (50, 50, -40, -30)

    def test_click_without_movement_is_discarded(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        drag(loaded_engine, (10, 10))
        assert len(loaded_engine.store) == 0

    def test_move_back_to_start_is_discarded(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        drag(loaded_engine, (10, 10), (40, 40), (10, 10))
        assert len(loaded_engine.store) == 0

    def test_uses_current_color(self, loaded_engine):
        loaded_engine.set_color("#22c55e")
        loaded_engine.set_tool(ToolType.RECTANGLE)
        drag(loaded_engine, (10, 10), (20, 20))
        assert loaded_engine.store.items[0].color.name() == "#22c55e"

    def test_geometry_is_in_world_space(self, loaded_engine):
        loaded_engine.set_zoom(2.0)
        loaded_engine.set_tool(ToolType.RECTANGLE)
        # Screen (50, 50) is the image center at any zoom
        drag(loaded_engine, (50, 50), (70, 60))
        rect = loaded_engine.store.items[0]
        assert (rect.x, rect.y, rect.width, rect.height) == (50, 50, 10, 5)

    def test_pointer_leave_commits_like_release(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        loaded_engine.pointer_press(QPointF(10, 10))
        loaded_engine.pointer_move(QPointF(30, 30))
        loaded_engine.pointer_leave()

        assert len(loaded_engine.store) == 1
        assert not loaded_engine.pointer_down
        # Further moves do nothing once the gesture is over
        loaded_engine.pointer_move(QPointF(90, 90))
        assert loaded_engine.store.items[0].width == 20


class TestArrowTool:
    """Drag-to-draw arrows."""

    def test_drag_adds_arrow_from_press_to_release(self, loaded_engine):
        loaded_engine.set_tool(ToolType.ARROW)
        drag(loaded_engine, (80, 10), (20, 60))
        arrow = loaded_engine.store.items[0]
        assert isinstance(arrow, ArrowAnnotation)
        assert (arrow.start.x(), arrow.start.y()) == (80, 10)
        assert (arrow.end.x(), arrow.end.y()) == (20, 60)

    def test_click_without_movement_is_discarded(self, loaded_engine):
        loaded_engine.set_tool(ToolType.ARROW)
        drag(loaded_engine, (30, 30))
        assert len(loaded_engine.store) == 0


class TestEraseTool:
    """Freehand erase strokes."""

    def test_single_point_stroke_is_discarded(self, loaded_engine):
        loaded_engine.set_tool(ToolType.ERASE)
        drag(loaded_engine, (30, 30))
        assert len(loaded_engine.store) == 0
        assert loaded_engine.draft is None

    def test_stroke_collects_points(self, loaded_engine):
        loaded_engine.set_eraser_size(35)
        loaded_engine.set_tool(ToolType.ERASE)
        drag(loaded_engine, (10, 10), (20, 15), (30, 30))

        stroke = loaded_engine.store.items[0]
        assert isinstance(stroke, EraseStroke)
        assert [(p.x(), p.y()) for p in stroke.points] == [(10, 10), (20, 15), (30, 30)]
        assert stroke.stroke_width == 35

    def test_eraser_size_is_clamped(self, engine):
        engine.set_eraser_size(1)
        assert engine.eraser_size == 2
        engine.set_eraser_size(500)
        assert engine.eraser_size == 100


class TestSelectTool:
    """Selecting, dragging and panning."""

    @pytest.fixture
    def with_rect(self, loaded_engine):
        rect = RectangleAnnotation(10, 10, 40, 40)
        loaded_engine.add_annotation(rect)
        loaded_engine.set_tool(ToolType.SELECT)
        return loaded_engine, rect

    def test_press_on_annotation_selects_it(self, with_rect):
        engine, rect = with_rect
        drag(engine, (30, 30))
        assert engine.selected_id == rect.id

    def test_press_on_empty_space_clears_selection(self, with_rect):
        engine, rect = with_rect
        engine.select(rect.id)
        drag(engine, (80, 80))
        assert engine.selected_id is None

    def test_drag_moves_selected_annotation(self, with_rect):
        engine, rect = with_rect
        drag(engine, (30, 30), (35, 32), (40, 35))
        moved = engine.store.get(rect.id)
        assert (moved.x, moved.y) == (20, 15)
        assert (moved.width, moved.height) == (40, 40)

    def test_drag_distance_is_converted_to_world_units(self, with_rect):
        engine, rect = with_rect
        engine.set_zoom(2.0)
        start = engine.viewport.to_screen(QPointF(30, 30))
        drag(engine, (start.x(), start.y()), (start.x() + 20, start.y() + 10))
        moved = engine.store.get(rect.id)
        assert (moved.x, moved.y) == (20, 15)

    def test_drag_on_empty_space_pans(self, with_rect):
        engine, rect = with_rect
        drag(engine, (80, 80), (90, 95))
        assert (engine.offset.x(), engine.offset.y()) == (10, 15)
        assert (rect.x, rect.y) == (10, 10)

    def test_topmost_annotation_is_selected(self, with_rect):
        engine, rect = with_rect
        top = RectangleAnnotation(20, 20, 10, 10)
        engine.add_annotation(top)
        drag(engine, (25, 25))
        assert engine.selected_id == top.id

    def test_erase_strokes_cannot_be_selected(self, loaded_engine):
        loaded_engine.add_annotation(EraseStroke([QPointF(0, 0), QPointF(100, 100)]))
        drag(loaded_engine, (50, 50))
        assert loaded_engine.selected_id is None

    def test_panning_refused_with_selection(self, with_rect):
        engine, rect = with_rect
        engine.select(rect.id)
        assert not engine.can_pan
        assert not engine.set_offset(QPointF(10, 10))
        assert (engine.offset.x(), engine.offset.y()) == (0, 0)

    def test_panning_refused_with_other_tools(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        assert not loaded_engine.set_offset(QPointF(10, 10))


class TestZoomTool:
    """Vertical drag zoom."""

    def test_drag_up_zooms_in(self, loaded_engine, qapp):
        zooms = []
        loaded_engine.zoom_changed.connect(zooms.append)
        loaded_engine.set_tool(ToolType.ZOOM)
        drag(loaded_engine, (50, 50), (50, 0))
        assert loaded_engine.zoom > 1.0
        assert zooms[-1] == loaded_engine.zoom

    def test_drag_down_zooms_out(self, loaded_engine):
        loaded_engine.set_tool(ToolType.ZOOM)
        drag(loaded_engine, (50, 50), (50, 100))
        assert loaded_engine.zoom < 1.0

    @pytest.mark.parametrize("end_y, expected", [(-100000, MAX_ZOOM), (100000, MIN_ZOOM)])
    def test_zoom_is_clamped(self, loaded_engine, end_y, expected):
        loaded_engine.set_tool(ToolType.ZOOM)
        drag(loaded_engine, (50, 50), (50, end_y))
        assert loaded_engine.zoom == expected

    def test_zoom_is_relative_to_gesture_start(self, loaded_engine):
        loaded_engine.set_tool(ToolType.ZOOM)
        loaded_engine.pointer_press(QPointF(50, 50))
        loaded_engine.pointer_move(QPointF(50, 0))
        loaded_engine.pointer_move(QPointF(50, 50))
        loaded_engine.pointer_release()
        assert loaded_engine.zoom == pytest.approx(1.0)


class TestGestureGuards:
    """Pointer-down exclusivity and preconditions."""

    def test_second_press_is_ignored(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        assert loaded_engine.pointer_press(QPointF(10, 10))
        assert not loaded_engine.pointer_press(QPointF(60, 60))
        loaded_engine.pointer_move(QPointF(20, 20))
        loaded_engine.pointer_release()

        rect = loaded_engine.store.items[0]
        assert (rect.x, rect.y) == (10, 10)

    def test_no_gesture_without_image(self, engine):
        engine.set_tool(ToolType.RECTANGLE)
        assert not engine.pointer_press(QPointF(10, 10))

    def test_no_gesture_while_loading(self, loaded_engine):
        loaded_engine.begin_load()
        assert not loaded_engine.pointer_press(QPointF(10, 10))
        loaded_engine.cancel_load()
        assert loaded_engine.pointer_press(QPointF(10, 10))

    def test_move_and_release_without_press_do_nothing(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        loaded_engine.pointer_move(QPointF(20, 20))
        loaded_engine.pointer_release()
        assert loaded_engine.draft is None
        assert len(loaded_engine.store) == 0

    def test_switching_tool_finishes_gesture(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        loaded_engine.pointer_press(QPointF(10, 10))
        loaded_engine.pointer_move(QPointF(30, 30))
        loaded_engine.set_tool(ToolType.SELECT)

        assert not loaded_engine.pointer_down
        assert len(loaded_engine.store) == 1


class TestTextTool:
    """Placing text blocks."""

    def test_press_opens_session_for_new_text(self, loaded_engine):
        loaded_engine.set_tool(ToolType.TEXT)
        drag(loaded_engine, (20, 20))

        session = loaded_engine.text_session
        assert session is not None
        assert session.is_new
        assert isinstance(session.annotation, TextAnnotation)
        assert (session.annotation.x, session.annotation.y) == (20, 20)
        assert session.annotation.font_size == 16
        assert len(loaded_engine.store) == 0

    def test_press_while_editing_only_commits(self, loaded_engine):
        loaded_engine.set_tool(ToolType.TEXT)
        drag(loaded_engine, (20, 20))
        loaded_engine.set_edit_text("Hello")
        drag(loaded_engine, (60, 60))

        assert loaded_engine.text_session is None
        assert len(loaded_engine.store) == 1
        assert loaded_engine.store.items[0].text == "Hello"

    def test_switching_away_commits(self, loaded_engine):
        loaded_engine.set_tool(ToolType.TEXT)
        drag(loaded_engine, (20, 20))
        loaded_engine.set_edit_text("Hello")
        loaded_engine.set_tool(ToolType.SELECT)

        assert loaded_engine.text_session is None
        assert len(loaded_engine.store) == 1

    def test_default_font_size_scales_with_image(self, engine):
        wide = QImage(2000, 50, QImage.Format.Format_RGB32)
        wide.fill(0)
        engine.load_image(encode_image(wide), "wide.png")
        assert engine.default_font_size() == pytest.approx(40)
