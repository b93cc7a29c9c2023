import pytest
from PySide6.QtWidgets import QMessageBox

from pixmark.editor.annotations import TextAnnotation
from pixmark.services.config_service import ConfigService
from pixmark.ui.main_window import APP_TITLE, MainWindow


@pytest.fixture
def window(qapp, tmp_path, monkeypatch):
    monkeypatch.setattr(QMessageBox, "warning", staticmethod(lambda *a: None))
    window = MainWindow(ConfigService(tmp_path / "config.json"))
    window.show()
    yield window
    window.close()
    window.deleteLater()


@pytest.fixture
def image_file(tmp_path, png_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)
    return path


def file_actions(window):
    menu = window.menuBar().actions()[0].menu()
    return {a.text(): a for a in menu.actions() if not a.isSeparator()}


def test_title_follows_open_and_close(window, image_file):
    assert window.windowTitle() == APP_TITLE

    assert window.open_image(image_file)
    assert "photo.png" in window.windowTitle()
    assert "100×100" in window.windowTitle()

    window.editor.close_image()
    assert window.windowTitle() == APP_TITLE


def test_file_menu_actions_track_image(window, image_file):
    actions = file_actions(window)
    assert not actions["&Close Image"].isEnabled()
    assert not actions["Export as &PNG..."].isEnabled()
    assert actions["&Open Image..."].isEnabled()

    window.open_image(image_file)
    assert actions["&Close Image"].isEnabled()
    assert actions["Export as &JPEG..."].isEnabled()

    actions["&Close Image"].trigger()
    assert not window.editor.engine.has_image
    assert not actions["Export as &PNG..."].isEnabled()


def test_close_commits_open_text_edit(window, image_file):
    window.open_image(image_file)
    engine = window.editor.engine
    engine.begin_text_edit(TextAnnotation(10, 10, font_size=engine.default_font_size()), True)
    engine.set_edit_text("note")

    window.close()
    assert engine.text_session is None
    assert len(engine.store) == 1
