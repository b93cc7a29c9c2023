"""
Logging service for PixMark.

Console logging plus an optional daily log file under
~/.local/share/pixmark/logs/. Qt's own diagnostics (qWarning and
friends) are routed into the same handlers through a "qt" logger.
The PIXMARK_LOG_LEVEL environment variable overrides the level.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QtMsgType, qInstallMessageHandler


DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "pixmark" / "logs"
LOG_LEVEL_ENV = "PIXMARK_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}

_logging_initialized = False


def level_from_env(default: int = logging.INFO) -> int:
    """Resolve the log level from PIXMARK_LOG_LEVEL (a name like DEBUG or a number)."""
    value = os.environ.get(LOG_LEVEL_ENV, "").strip()
    if not value:
        return default
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else default


def _qt_message_handler(msg_type, context, message: str) -> None:
    get_logger("qt").log(QT_LEVELS.get(msg_type, logging.WARNING), message)


def setup_logging(
    log_level: Optional[int] = None,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the logging system for PixMark.

    Args:
        log_level: The logging level. Defaults to PIXMARK_LOG_LEVEL, then INFO.
        log_to_file: Whether to also log to a file.
        log_dir: Directory for log files. Defaults to ~/.local/share/pixmark/logs/

    Only the first call has any effect.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    if log_level is None:
        log_level = level_from_env()
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / f"pixmark_{datetime.now().strftime('%Y%m%d')}.log"

            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")

    qInstallMessageHandler(_qt_message_handler)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: The name for the logger, typically __name__ of the calling module.
    """
    return logging.getLogger(name)
