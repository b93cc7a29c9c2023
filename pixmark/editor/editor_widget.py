"""
Editor widget for PixMark - the main editor UI component.

This widget composes the complete editor interface:
- Top toolbar with tool buttons, color swatches and export actions
- Center canvas for image display and annotation
- Bottom status bar with zoom and dimensions

File access lives here: the engine only ever sees bytes going in and an
ExportResult coming out.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QButtonGroup,
    QFileDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QSlider,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from pixmark.editor.annotations import TextAnnotation
from pixmark.editor.editor_canvas import EditorCanvas
from pixmark.editor.engine import AnnotationEngine
from pixmark.editor.flattener import ExportFormat, ExportResult, Flattener
from pixmark.editor.tools import ToolType
from pixmark.errors import OperationPendingError
from pixmark.services.config_service import (
    MARKUP_COLORS,
    MAX_ERASER_SIZE,
    MIN_ERASER_SIZE,
    ConfigService,
)
from pixmark.services.logging_service import get_logger


IMAGE_FILTER = "Images (*.png *.jpg *.jpeg)"


class ColorSwatch(QPushButton):
    """Checkable round button showing one palette color."""

    def __init__(self, color: str, parent=None):
        super().__init__(parent)
        self._color = QColor(color)
        self.setCheckable(True)
        self.setFixedSize(22, 22)
        self.setToolTip(self._color.name())
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color.name()};
                border: 2px solid #555;
                border-radius: 11px;
            }}
            QPushButton:checked {{
                border-color: #ffffff;
            }}
        """)

    @property
    def color(self) -> QColor:
        return QColor(self._color)


class StatusBar(QFrame):
    """
    Bottom status bar showing zoom and image dimensions.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedHeight(32)
        self.setStyleSheet("""
            QFrame {
                background-color: #2a2a2a;
                border-top: 1px solid #3a3a3a;
            }
            QLabel {
                color: #aaa;
                font-size: 11px;
            }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 0, 12, 0)
        layout.setSpacing(20)

        self._zoom = QLabel("Zoom: 100%")
        layout.addWidget(self._zoom)

        self._dimensions = QLabel("")
        layout.addWidget(self._dimensions)

        self._name = QLabel("")
        layout.addWidget(self._name)

        layout.addStretch()

    def set_zoom(self, zoom: float) -> None:
        """Update zoom display."""
        self._zoom.setText(f"Zoom: {int(round(zoom * 100))}%")

    def set_image_info(self, name: Optional[str], width: int, height: int) -> None:
        """Update image name and dimensions display."""
        if width and height:
            self._dimensions.setText(f"{width} × {height}")
        else:
            self._dimensions.setText("")
        self._name.setText(name or "")


class EditorWidget(QWidget):
    """
    Main editor widget composing toolbar, canvas and status bar.

    Signals:
        image_opened: Display name of a newly loaded image.
        image_closed: The image was closed.
    """

    image_opened = Signal(str)
    image_closed = Signal()

    TOOL_CONFIGS = [
        (ToolType.SELECT, "Select", "V"),
        (ToolType.RECTANGLE, "Rectangle", "R"),
        (ToolType.ARROW, "Arrow", "A"),
        (ToolType.TEXT, "Text", "T"),
        (ToolType.ERASE, "Erase", "E"),
        (ToolType.ZOOM, "Zoom", "Z"),
    ]

    def __init__(self, config_service: Optional[ConfigService] = None, parent=None):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service

        colors = config_service.markup_colors if config_service else list(MARKUP_COLORS)
        flattener = Flattener(
            background=QColor(config_service.export_background) if config_service else None,
            quality=config_service.jpeg_quality if config_service else 90,
        )
        self._engine = AnnotationEngine(
            color=config_service.default_color if config_service else colors[0],
            eraser_size=config_service.eraser_size if config_service else 20,
            flattener=flattener,
            parent=self,
        )
        self._colors = colors

        self._setup_ui()
        self._connect_signals()

        default_tool = ToolType.SELECT
        if config_service:
            try:
                default_tool = ToolType(config_service.default_tool)
            except ValueError:
                self._logger.warning(f"Unknown default tool: {config_service.default_tool}")
        self._select_tool(default_tool)
        self._update_actions()

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ─── Top Toolbar ──────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: #2a2a2a;
                border-bottom: 1px solid #3a3a3a;
                padding: 6px 8px;
                spacing: 4px;
            }
            QToolBar::separator {
                background-color: #444;
                width: 1px;
                margin: 4px 6px;
            }
            QToolButton {
                color: #ddd;
                background-color: transparent;
                border: none;
                border-radius: 8px;
                padding: 6px 8px;
                margin: 2px;
                min-height: 24px;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:checked {
                background-color: rgba(74, 144, 226, 0.3);
            }
            QToolButton:disabled {
                color: #666;
            }
        """)

        # Open / close
        self._open_btn = self._add_action_button("Open", "Open image (Ctrl+O)", self.open_image_dialog)
        self._close_btn = self._add_action_button("Close", "Close image", self.close_image)
        self._toolbar.addSeparator()

        # Tool buttons
        self._tool_group = QButtonGroup(self)
        self._tool_group.setExclusive(True)

        for tool_type, tooltip, shortcut in self.TOOL_CONFIGS:
            btn = QToolButton()
            btn.setText(tooltip)
            btn.setToolTip(f"{tooltip} ({shortcut})")
            btn.setCheckable(True)
            btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
            btn.setProperty("tool_type", tool_type)
            btn.clicked.connect(lambda checked, t=tool_type: self._select_tool(t))
            self._tool_group.addButton(btn)
            self._toolbar.addWidget(btn)

        self._toolbar.addSeparator()

        # Color swatches
        self._color_group = QButtonGroup(self)
        self._color_group.setExclusive(True)
        current = self._engine.color.name()
        for color in self._colors:
            swatch = ColorSwatch(color)
            swatch.clicked.connect(lambda checked, s=swatch: self._engine.set_color(s.color))
            if QColor(color).name() == current:
                swatch.setChecked(True)
            self._color_group.addButton(swatch)
            self._toolbar.addWidget(swatch)

        # Eraser size (only shown with the erase tool)
        self._eraser_slider = QSlider(Qt.Orientation.Horizontal)
        self._eraser_slider.setRange(MIN_ERASER_SIZE, MAX_ERASER_SIZE)
        self._eraser_slider.setValue(self._engine.eraser_size)
        self._eraser_slider.setFixedWidth(120)
        self._eraser_slider.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self._eraser_slider.valueChanged.connect(self._on_eraser_size_changed)
        self._eraser_label = QLabel(f"{self._engine.eraser_size}px")
        self._eraser_label.setStyleSheet("color: #aaa; padding: 0 6px;")
        self._eraser_slider_action = self._toolbar.addWidget(self._eraser_slider)
        self._eraser_label_action = self._toolbar.addWidget(self._eraser_label)

        # Edit text (only shown with a text annotation selected)
        self._edit_text_btn = self._add_action_button(
            "Edit text", "Edit the selected text", self._engine.edit_selected_text
        )
        self._edit_text_action = self._toolbar.actions()[-1]

        # Spacer
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self._toolbar.addWidget(spacer)

        # Export
        self._export_png_btn = self._add_action_button(
            "Export PNG", "Export as PNG (Ctrl+S)", lambda: self.export_image(ExportFormat.PNG)
        )
        self._export_jpeg_btn = self._add_action_button(
            "Export JPEG", "Export as JPEG", lambda: self.export_image(ExportFormat.JPEG)
        )

        main_layout.addWidget(self._toolbar)

        # ─── Center Canvas ────────────────────────────────────────────
        self._canvas = EditorCanvas(self._engine, self._colors)
        main_layout.addWidget(self._canvas, 1)

        # ─── Bottom Status Bar ────────────────────────────────────────
        self._status = StatusBar()
        main_layout.addWidget(self._status)

    def _add_action_button(self, text: str, tooltip: str, slot) -> QToolButton:
        btn = QToolButton()
        btn.setText(text)
        btn.setToolTip(tooltip)
        btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        btn.clicked.connect(lambda checked=False: slot())
        self._toolbar.addWidget(btn)
        return btn

    def _connect_signals(self) -> None:
        """Connect engine signals."""
        self._engine.zoom_changed.connect(self._on_zoom_changed)
        self._engine.selection_changed.connect(self._on_selection_changed)
        self._engine.image_changed.connect(self._on_image_changed)
        self._engine.tool_changed.connect(self._on_tool_changed)
        self._engine.text_edit_started.connect(lambda _: self._update_actions())
        self._engine.text_edit_finished.connect(self._update_actions)
        self._engine.error_occurred.connect(self._show_error)

    @property
    def engine(self) -> AnnotationEngine:
        return self._engine

    @property
    def canvas(self) -> EditorCanvas:
        return self._canvas

    # ─── Tool Management ──────────────────────────────────────────────────

    def _select_tool(self, tool_type: ToolType) -> None:
        """Select a tool by type."""
        self._engine.set_tool(tool_type)
        self._on_tool_changed(tool_type)

    @Slot(object)
    def _on_tool_changed(self, tool_type: ToolType) -> None:
        for btn in self._tool_group.buttons():
            if btn.property("tool_type") == tool_type:
                btn.setChecked(True)
                break
        self._update_actions()

    def _on_eraser_size_changed(self, value: int) -> None:
        self._engine.set_eraser_size(value)
        self._eraser_label.setText(f"{self._engine.eraser_size}px")

    def _update_actions(self) -> None:
        """Show, hide and enable toolbar actions from the engine state."""
        has_image = self._engine.has_image
        is_erase = self._engine.tool_type == ToolType.ERASE
        selected = self._engine.selected_annotation
        can_edit_text = (
            isinstance(selected, TextAnnotation) and self._engine.text_session is None
        )

        self._eraser_slider_action.setVisible(is_erase)
        self._eraser_label_action.setVisible(is_erase)
        self._edit_text_action.setVisible(can_edit_text)
        self._close_btn.setEnabled(has_image)
        self._export_png_btn.setEnabled(has_image)
        self._export_jpeg_btn.setEnabled(has_image)

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(float)
    def _on_zoom_changed(self, zoom: float) -> None:
        self._status.set_zoom(zoom)

    @Slot(object)
    def _on_selection_changed(self, annotation) -> None:
        self._update_actions()

    @Slot()
    def _on_image_changed(self) -> None:
        w, h = self._engine.image_size
        self._status.set_image_info(self._engine.source_name, w, h)
        self._update_actions()

    @Slot(str)
    def _show_error(self, message: str) -> None:
        QMessageBox.warning(self, "PixMark", message)

    # ─── Image Management ─────────────────────────────────────────────────

    def open_image_dialog(self) -> None:
        """Ask for an image file and load it."""
        start_dir = str(Path.home())
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", start_dir, IMAGE_FILTER)
        if path:
            self.open_image_file(Path(path))

    def open_image_file(self, path: Path) -> bool:
        """
        Read an image file and hand its bytes to the engine.

        Returns:
            True if the image was loaded.
        """
        try:
            self._engine.begin_load()
        except OperationPendingError as e:
            self._logger.warning(str(e))
            return False

        try:
            data = Path(path).read_bytes()
        except OSError as e:
            self._engine.cancel_load()
            self._logger.error(f"Failed to read {path}: {e}")
            self._show_error(f"Could not read {Path(path).name}: {e.strerror or e}")
            return False

        loaded = self._engine.load_image(data, Path(path).name)
        if loaded:
            self.image_opened.emit(Path(path).name)
        return loaded

    def close_image(self) -> None:
        """Close the current image."""
        if not self._engine.has_image:
            return
        self._engine.close_image()
        self.image_closed.emit()

    def export_image(self, fmt: ExportFormat) -> None:
        """Flatten the annotated image and offer it for saving."""
        if not self._engine.has_image:
            return
        self._engine.export(fmt, deliver=self._deliver_export)

    def _deliver_export(self, result: ExportResult) -> None:
        """Ask where to save an export and write it."""
        if self._config:
            save_folder = Path(self._config.default_save_folder)
        else:
            save_folder = Path.home() / "Pictures" / "PixMark"

        path, _ = QFileDialog.getSaveFileName(
            self, "Export Image", str(save_folder / result.filename), IMAGE_FILTER
        )
        if not path:
            return

        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            Path(path).write_bytes(result.data)
        except OSError as e:
            self._logger.error(f"Failed to save to {path}: {e}")
            self._show_error(f"Could not save {Path(path).name}: {e.strerror or e}")
            return
        self._logger.info(f"Saved to {path}")

    # ─── Key Events ───────────────────────────────────────────────────────

    def keyPressEvent(self, event) -> None:
        """Handle keyboard shortcuts."""
        key = event.key()
        modifiers = event.modifiers()

        tool_shortcuts = {
            Qt.Key.Key_V: ToolType.SELECT,
            Qt.Key.Key_R: ToolType.RECTANGLE,
            Qt.Key.Key_A: ToolType.ARROW,
            Qt.Key.Key_T: ToolType.TEXT,
            Qt.Key.Key_E: ToolType.ERASE,
            Qt.Key.Key_Z: ToolType.ZOOM,
        }

        if key in tool_shortcuts and not modifiers:
            self._select_tool(tool_shortcuts[key])
            return

        if modifiers & Qt.KeyboardModifier.ControlModifier:
            if key == Qt.Key.Key_O:
                self.open_image_dialog()
                return
            if key == Qt.Key.Key_S:
                self.export_image(ExportFormat.PNG)
                return

        super().keyPressEvent(event)
