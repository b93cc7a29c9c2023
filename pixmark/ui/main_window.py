"""
Main window for PixMark.

Hosts the editor widget and keeps the window title in step with the
open image.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QMainWindow, QWidget

from pixmark.editor.editor_widget import EditorWidget
from pixmark.editor.flattener import ExportFormat
from pixmark.services.config_service import ConfigService
from pixmark.services.logging_service import get_logger


APP_TITLE = "PixMark - Image Annotation"


class MainWindow(QMainWindow):
    """
    Main application window for PixMark.

    The editor includes:
    - Canvas with zoom and pan
    - Toolbar with annotation tools, colors and export
    - Status bar with zoom/dimensions
    - File menu mirroring the toolbar's open, close and export actions
    """

    def __init__(
        self,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            config_service: Optional config service for editor defaults.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service

        self._setup_window()
        self._setup_central_widget()
        self._setup_menu_bar()
        self._update_menu()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setWindowTitle(APP_TITLE)
        self.setMinimumSize(800, 600)
        self.resize(1200, 800)
        self.setStyleSheet("QMainWindow { background-color: #1e1e1e; }")

    def _setup_central_widget(self) -> None:
        """Set up the central widget (editor)."""
        self._editor = EditorWidget(self._config, self)
        self._editor.image_opened.connect(self._on_image_opened)
        self._editor.image_closed.connect(self._on_image_closed)
        self.setCentralWidget(self._editor)

    def _setup_menu_bar(self) -> None:
        """Create the File menu."""
        menu_bar = self.menuBar()
        menu_bar.setStyleSheet(
            "QMenuBar { background-color: #262626; color: #e5e5e5; }"
            "QMenuBar::item:selected { background-color: #3b82f6; }"
        )

        file_menu = menu_bar.addMenu("&File")

        open_action = QAction("&Open Image...", self)
        open_action.setStatusTip("Open an image to annotate")
        open_action.triggered.connect(self._editor.open_image_dialog)
        file_menu.addAction(open_action)

        self._close_action = QAction("&Close Image", self)
        self._close_action.triggered.connect(self._editor.close_image)
        file_menu.addAction(self._close_action)

        file_menu.addSeparator()

        self._export_png_action = QAction("Export as &PNG...", self)
        self._export_png_action.triggered.connect(
            lambda: self._editor.export_image(ExportFormat.PNG)
        )
        file_menu.addAction(self._export_png_action)

        self._export_jpeg_action = QAction("Export as &JPEG...", self)
        self._export_jpeg_action.triggered.connect(
            lambda: self._editor.export_image(ExportFormat.JPEG)
        )
        file_menu.addAction(self._export_jpeg_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.setStatusTip("Exit the application")
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

    def _update_menu(self) -> None:
        has_image = self._editor.engine.has_image
        for action in (self._close_action, self._export_png_action, self._export_jpeg_action):
            action.setEnabled(has_image)

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    # ─── Public Methods ───────────────────────────────────────────────────

    def open_image(self, path: Path) -> bool:
        """
        Load an image file into the editor.

        Args:
            path: Image file to open.
        """
        return self._editor.open_image_file(path)

    # ─── Signal Handlers ──────────────────────────────────────────────────

    def _on_image_opened(self, name: str) -> None:
        width, height = self._editor.engine.image_size
        self.setWindowTitle(f"PixMark - {name} ({width}×{height})")
        self._update_menu()

    def _on_image_closed(self) -> None:
        self.setWindowTitle(APP_TITLE)
        self._update_menu()

    def closeEvent(self, event) -> None:
        """Commit any open text edit before closing."""
        self._logger.info("MainWindow closing")
        self._editor.engine.commit_text_edit()
        super().closeEvent(event)
