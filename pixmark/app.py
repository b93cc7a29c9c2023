"""
PixMark - an interactive image annotation editor.

This is the main entry point for the application.
Run with: python -m pixmark.app [IMAGE]
"""

import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from pixmark import __version__
from pixmark.services.config_service import ConfigService
from pixmark.services.logging_service import get_logger, setup_logging
from pixmark.ui.main_window import MainWindow


def main() -> int:
    """
    Main entry point for PixMark application.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    # Initialize basic logging first to catch early errors
    setup_logging()
    logger = get_logger(__name__)

    try:
        logger.info("Starting PixMark application...")

        # Create the Qt application
        app = QApplication(sys.argv)
        app.setApplicationName("PixMark")
        app.setOrganizationName("PixMark")
        app.setApplicationVersion(__version__)

        config = ConfigService()
        window = MainWindow(config)
        window.show()

        # Optional image path argument
        args = app.arguments()[1:]
        if args:
            window.open_image(Path(args[0]))

        logger.info("PixMark initialization complete. Entering event loop...")

        exit_code = app.exec()

        logger.info(f"PixMark exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        # Log any unhandled exceptions
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
