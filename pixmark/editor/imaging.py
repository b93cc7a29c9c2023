"""
Image decoding for the editor.

The editor receives raw bytes from whoever acquired the file and only
needs the decoded bitmap and its native size back.
"""

from dataclasses import dataclass

from PySide6.QtGui import QImage

from pixmark.errors import ImageDecodeError


@dataclass(frozen=True)
class DecodedImage:
    """A decoded base image."""

    image: QImage
    width: int
    height: int


def decode_image(data: bytes) -> DecodedImage:
    """
    Decode PNG/JPEG (or any format Qt reads) bytes.

    Raises:
        ImageDecodeError: If the bytes are empty, corrupt or unsupported.
    """
    if not data:
        raise ImageDecodeError("No image data")

    image = QImage.fromData(data)
    if image.isNull() or image.width() == 0 or image.height() == 0:
        raise ImageDecodeError("Unsupported or corrupt image")

    image = image.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)
    return DecodedImage(image=image, width=image.width(), height=image.height())
