import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QBuffer, QByteArray, QIODevice
from PySide6.QtGui import QColor, QImage
from PySide6.QtWidgets import QApplication

from pixmark.editor.engine import AnnotationEngine


GRAY = QColor(128, 128, 128)


def encode_image(image: QImage, fmt: str = "PNG") -> bytes:
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, fmt)
    buffer.close()
    return bytes(QByteArray(buffer.data()))


def decode_bytes(data: bytes) -> QImage:
    return QImage.fromData(data)


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def gray_image(qapp):
    image = QImage(100, 100, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(GRAY)
    return image


@pytest.fixture
def png_bytes(gray_image):
    return encode_image(gray_image, "PNG")


@pytest.fixture
def engine(qapp):
    engine = AnnotationEngine()
    engine.set_surface_size(100, 100)
    return engine


@pytest.fixture
def loaded_engine(engine, png_bytes):
    """100x100 image on a 100x100 surface: screen and world coordinates coincide."""
    assert engine.load_image(png_bytes, "photo.png")
    return engine
