"""
Text layout helpers for text annotations.

Text blocks wrap greedily on spaces: words are appended to the current
line until the line (with its trailing space) would exceed the wrap
width, then a new line starts. The first word of a paragraph always
stays on its line, however wide it is. Explicit newlines start new
paragraphs.

Measurement needs a QGuiApplication (font database).
"""

from typing import List

from PySide6.QtGui import QFont, QFontMetricsF


LINE_HEIGHT_FACTOR = 1.2
FONT_FAMILY = "sans-serif"


def make_font(font_size: float) -> QFont:
    """Create the annotation font at the given pixel size."""
    font = QFont(FONT_FAMILY)
    font.setStyleHint(QFont.StyleHint.SansSerif)
    font.setPixelSize(max(1, round(font_size)))
    return font


def line_height(font_size: float) -> float:
    """Height of one text line in world units."""
    return font_size * LINE_HEIGHT_FACTOR


def wrap_text(text: str, max_width: float, font_size: float) -> List[str]:
    """
    Break text into display lines.

    Args:
        text: The text content.
        max_width: Wrap width in world units.
        font_size: Font pixel size.

    Returns:
        The lines in display order; never empty.
    """
    metrics = QFontMetricsF(make_font(font_size))
    lines: List[str] = []

    for paragraph in text.split("\n"):
        words = paragraph.split(" ")
        line = ""
        for n, word in enumerate(words):
            test_line = line + word + " "
            if metrics.horizontalAdvance(test_line) > max_width and n > 0:
                lines.append(line)
                line = word + " "
            else:
                line = test_line
        lines.append(line)

    return lines


def text_block_height(text: str, max_width: float, font_size: float) -> float:
    """Derived height of a wrapped text block: line count × line height."""
    return len(wrap_text(text, max_width, font_size)) * line_height(font_size)
