import pytest
from PySide6.QtCore import QPointF, QSize
from PySide6.QtGui import QColor, QImage

from conftest import GRAY, decode_bytes

from pixmark.editor.annotations import (
    DEFAULT_COLOR,
    EraseStroke,
    RectangleAnnotation,
    TextAnnotation,
)
from pixmark.editor.flattener import (
    ExportFormat,
    Flattener,
    suggested_filename,
)
from pixmark.editor.renderer import Renderer
from pixmark.editor.tools import ToolType
from pixmark.editor.viewport import ViewportTransform
from pixmark.errors import ExportError


RED = QColor(DEFAULT_COLOR)


def same_rgb(actual: QColor, expected: QColor, tolerance: int = 2) -> bool:
    return (
        abs(actual.red() - expected.red()) <= tolerance
        and abs(actual.green() - expected.green()) <= tolerance
        and abs(actual.blue() - expected.blue()) <= tolerance
    )


@pytest.fixture
def identity_view():
    return ViewportTransform(
        zoom=1, surface_width=100, surface_height=100, image_width=100, image_height=100
    )


@pytest.fixture
def erase_scene():
    """Rectangle, then an erase band across y=30, then a second rectangle."""
    before = RectangleAnnotation(10, 10, 40, 40)
    stroke = EraseStroke([QPointF(0, 30), QPointF(100, 30)], stroke_width=20)
    after = RectangleAnnotation(20, 20, 20, 20)
    return [before, stroke, after]


class TestRenderer:
    """Interactive frame rendering."""

    def test_redraw_is_idempotent(self, loaded_engine):
        loaded_engine.add_annotation(RectangleAnnotation(10, 10, 40, 40))
        loaded_engine.add_annotation(TextAnnotation(20, 60, "Hello"))
        loaded_engine.select(loaded_engine.store.items[0].id)
        assert loaded_engine.render_frame() == loaded_engine.render_frame()

    def test_frame_is_surface_sized(self, loaded_engine):
        loaded_engine.set_surface_size(320, 240)
        frame = loaded_engine.render_frame()
        assert (frame.width(), frame.height()) == (320, 240)

    def test_no_frame_without_image(self, engine):
        assert engine.render_frame().isNull()

    def test_erase_clears_earlier_content_only(self, gray_image, identity_view, erase_scene):
        frame = Renderer().render_to_image(QSize(100, 100), identity_view, gray_image, erase_scene)
        # Earlier rectangle's left edge inside the band: cleared to transparent
        assert frame.pixelColor(10, 30).alpha() == 0
        # Later rectangle's left edge inside the band: intact
        assert same_rgb(frame.pixelColor(20, 30), RED)
        assert frame.pixelColor(20, 30).alpha() == 255
        # Outside the band nothing changes
        assert same_rgb(frame.pixelColor(10, 45), RED)
        assert same_rgb(frame.pixelColor(70, 70), GRAY)

    def test_edited_annotation_is_hidden(self, gray_image, identity_view):
        text = TextAnnotation(10, 10, "Hello", font_size=30)
        renderer = Renderer()
        size = QSize(100, 100)
        blank = renderer.render_to_image(size, identity_view, gray_image, [])
        hidden = renderer.render_to_image(
            size, identity_view, gray_image, [text], selected=text, hidden_id=text.id
        )
        shown = renderer.render_to_image(size, identity_view, gray_image, [text])
        assert hidden == blank
        assert shown != blank

    def test_selection_outline_drawn(self, gray_image, identity_view):
        rect = RectangleAnnotation(20, 20, 40, 40, QColor("#000000"))
        renderer = Renderer()
        plain = renderer.render_to_image(QSize(100, 100), identity_view, gray_image, [rect])
        outlined = renderer.render_to_image(
            QSize(100, 100), identity_view, gray_image, [rect], selected=rect
        )
        assert plain != outlined

    def test_draft_drawn_on_top(self, gray_image, identity_view):
        draft = RectangleAnnotation(10, 10, 40, 40)
        frame = Renderer().render_to_image(
            QSize(100, 100), identity_view, gray_image, [], draft=draft
        )
        assert same_rgb(frame.pixelColor(10, 30), RED)

    def test_view_zoom_moves_content(self, gray_image):
        view = ViewportTransform(
            zoom=2, surface_width=100, surface_height=100, image_width=100, image_height=100
        )
        rect = RectangleAnnotation(30, 30, 10, 10)
        frame = Renderer().render_to_image(QSize(100, 100), view, gray_image, [rect])
        # World x=30 lands on screen x=10 at zoom 2
        assert same_rgb(frame.pixelColor(10, 20), RED)


class TestFlattener:
    """Native-resolution export."""

    def test_png_keeps_native_size_and_alpha(self, gray_image, erase_scene):
        flattened = Flattener().flatten(gray_image, erase_scene, ExportFormat.PNG)
        assert (flattened.width(), flattened.height()) == (100, 100)
        assert flattened.pixelColor(10, 30).alpha() == 0
        assert same_rgb(flattened.pixelColor(20, 30), RED)

    def test_erase_removes_base_image_pixels(self, gray_image):
        stroke = EraseStroke([QPointF(0, 80), QPointF(100, 80)], stroke_width=10)
        flattened = Flattener().flatten(gray_image, [stroke], ExportFormat.PNG)
        assert flattened.pixelColor(50, 80).alpha() == 0
        assert flattened.pixelColor(50, 50).alpha() == 255

    def test_jpeg_gets_opaque_background(self, gray_image, erase_scene):
        flattened = Flattener(background=QColor("#ffffff")).flatten(
            gray_image, erase_scene, ExportFormat.JPEG
        )
        assert not flattened.hasAlphaChannel()
        assert same_rgb(flattened.pixelColor(10, 30), QColor(255, 255, 255))
        assert same_rgb(flattened.pixelColor(20, 30), RED)

    def test_export_png_round_trips(self, gray_image):
        result = Flattener().export(
            gray_image, [RectangleAnnotation(10, 10, 40, 40)], ExportFormat.PNG, "photo.jpg"
        )
        assert result.mime_type == "image/png"
        assert result.filename == "annotated_photo.png"
        decoded = decode_bytes(result.data)
        assert (decoded.width(), decoded.height()) == (100, 100)
        assert same_rgb(decoded.pixelColor(10, 30), RED)

    def test_export_jpeg_is_opaque(self, gray_image):
        result = Flattener().export(gray_image, [], ExportFormat.JPEG, "photo.png")
        assert result.mime_type == "image/jpeg"
        assert result.filename == "annotated_photo.jpeg"
        decoded = decode_bytes(result.data)
        assert not decoded.hasAlphaChannel()
        assert same_rgb(decoded.pixelColor(50, 50), GRAY, tolerance=6)

    def test_null_image_is_an_error(self):
        with pytest.raises(ExportError):
            Flattener().flatten(QImage(), [], ExportFormat.PNG)

    def test_native_stroke_width_ignores_view(self, gray_image):
        flattened = Flattener().flatten(
            gray_image, [RectangleAnnotation(20, 20, 60, 60)], ExportFormat.PNG
        )
        # Width 4 centered on x=20 covers 18..22
        assert same_rgb(flattened.pixelColor(21, 50), RED)
        assert same_rgb(flattened.pixelColor(24, 50), GRAY)


@pytest.mark.parametrize(
    "source, fmt, expected",
    [
        ("photo.png", ExportFormat.PNG, "annotated_photo.png"),
        ("holiday.final.jpg", ExportFormat.JPEG, "annotated_holiday.final.jpeg"),
        (None, ExportFormat.PNG, "annotated_image.png"),
        ("", ExportFormat.JPEG, "annotated_image.jpeg"),
    ],
)
def test_suggested_filename(source, fmt, expected):
    assert suggested_filename(source, fmt) == expected


class TestEngineExport:
    """Export through the engine, including its guards."""

    def test_export_ignores_view_zoom(self, loaded_engine):
        loaded_engine.set_tool(ToolType.RECTANGLE)
        loaded_engine.pointer_press(QPointF(10, 10))
        loaded_engine.pointer_move(QPointF(50, 50))
        loaded_engine.pointer_release()
        loaded_engine.set_zoom(3)

        result = loaded_engine.export(ExportFormat.PNG)
        decoded = decode_bytes(result.data)
        rect = loaded_engine.store.items[0]
        assert (rect.x, rect.y, rect.width, rect.height) == (10, 10, 40, 40)
        assert (decoded.width(), decoded.height()) == (100, 100)
        assert same_rgb(decoded.pixelColor(10, 30), RED)
        assert same_rgb(decoded.pixelColor(50, 30), RED)
        assert same_rgb(decoded.pixelColor(30, 30), GRAY)

    def test_export_delivers_result(self, loaded_engine):
        delivered = []
        result = loaded_engine.export(ExportFormat.PNG, deliver=delivered.append)
        assert delivered == [result]
        assert result.filename == "annotated_photo.png"

    def test_export_commits_open_text(self, loaded_engine):
        loaded_engine.begin_text_edit(TextAnnotation(10, 10), is_new=True)
        loaded_engine.set_edit_text("label")
        loaded_engine.export(ExportFormat.PNG)
        assert loaded_engine.text_session is None
        assert len(loaded_engine.store) == 1

    def test_encode_failure_reports_and_delivers_nothing(self, loaded_engine, monkeypatch):
        errors, delivered = [], []
        loaded_engine.error_occurred.connect(errors.append)

        def fail(image, fmt):
            raise ExportError("encoder produced no data")

        monkeypatch.setattr(loaded_engine._flattener, "encode", fail)
        assert loaded_engine.export(ExportFormat.PNG, deliver=delivered.append) is None
        assert delivered == []
        assert len(errors) == 1
        assert not loaded_engine.exporting

    def test_export_without_image_fails(self, engine):
        errors = []
        engine.error_occurred.connect(errors.append)
        assert engine.export(ExportFormat.PNG) is None
        assert errors

    def test_overlapping_export_is_refused(self, loaded_engine):
        errors, nested = [], []
        loaded_engine.error_occurred.connect(errors.append)

        def deliver(result):
            nested.append(loaded_engine.exporting)

        loaded_engine.export(ExportFormat.PNG, deliver=deliver)
        assert nested == [False]

        loaded_engine._exporting = True
        assert loaded_engine.export(ExportFormat.PNG) is None
        assert errors == ["An export is already in progress"]
