"""
Flattening and export.

Flattening works in native image pixels and ignores the interactive
view: stroke widths are fixed, zoom and pan play no part. Annotations
are baked in store order, so erase strokes clear the image and earlier
annotations but never later ones. Lossy formats get an opaque background
composited under the flattened layer.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, Qt
from PySide6.QtGui import QColor, QImage, QPainter

from pixmark.editor.annotations import AnnotationBase, StrokeMetrics
from pixmark.errors import ExportError
from pixmark.services.logging_service import get_logger


DEFAULT_QUALITY = 90
FILENAME_PREFIX = "annotated_"


class ExportFormat(Enum):
    """Supported output formats."""
    PNG = "png"
    JPEG = "jpeg"

    @property
    def qt_format(self) -> str:
        return self.name

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def has_alpha(self) -> bool:
        return self is ExportFormat.PNG


@dataclass(frozen=True)
class ExportResult:
    """Encoded image ready to hand to a delivery collaborator."""

    data: bytes
    filename: str
    mime_type: str


def suggested_filename(source_name: Optional[str], fmt: ExportFormat) -> str:
    """Deterministic download name, e.g. ``annotated_photo.png``."""
    stem = Path(source_name).stem if source_name else "image"
    return f"{FILENAME_PREFIX}{stem or 'image'}.{fmt.extension}"


class Flattener:
    """
    Bakes annotations into the base image and encodes the result.

    Args:
        background: Opaque fill for formats without alpha.
        quality: Lossy encoder quality, 0-100.
    """

    def __init__(
        self,
        background: Optional[QColor] = None,
        quality: int = DEFAULT_QUALITY,
    ) -> None:
        self._logger = get_logger(__name__)
        self.background = QColor(background) if background is not None else QColor(255, 255, 255)
        self.quality = quality

    def flatten(
        self,
        image: QImage,
        annotations: Iterable[AnnotationBase],
        fmt: ExportFormat = ExportFormat.PNG,
    ) -> QImage:
        """
        Render image + annotations at native resolution.

        Raises:
            ExportError: If there is no image to flatten.
        """
        if image is None or image.isNull():
            raise ExportError("No image to export")

        layer = QImage(image.size(), QImage.Format.Format_ARGB32_Premultiplied)
        layer.fill(Qt.GlobalColor.transparent)

        painter = QPainter(layer)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.drawImage(0, 0, image)
        metrics = StrokeMetrics.native()
        for annotation in annotations:
            annotation.paint(painter, metrics)
        painter.end()

        if fmt.has_alpha:
            return layer

        result = QImage(image.size(), QImage.Format.Format_RGB32)
        result.fill(self.background)
        painter = QPainter(result)
        painter.drawImage(0, 0, layer)
        painter.end()
        return result

    def encode(self, image: QImage, fmt: ExportFormat) -> bytes:
        """
        Encode a flattened image.

        Raises:
            ExportError: If the encoder produced no data.
        """
        buffer = QBuffer()
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        quality = self.quality if not fmt.has_alpha else -1
        ok = image.save(buffer, fmt.qt_format, quality)
        buffer.close()

        data = bytes(QByteArray(buffer.data()))
        if not ok or not data:
            raise ExportError(f"Could not encode image as {fmt.name}")
        return data

    def export(
        self,
        image: QImage,
        annotations: Iterable[AnnotationBase],
        fmt: ExportFormat,
        source_name: Optional[str] = None,
    ) -> ExportResult:
        """Flatten, encode and name the result."""
        flattened = self.flatten(image, annotations, fmt)
        data = self.encode(flattened, fmt)
        filename = suggested_filename(source_name, fmt)
        self._logger.info(f"Exported {filename} ({len(data)} bytes)")
        return ExportResult(data=data, filename=filename, mime_type=fmt.mime_type)
