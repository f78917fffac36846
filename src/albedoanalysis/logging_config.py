"""
Logging Configuration
Sets up the 'albedoanalysis' package logger and forwards Qt's own
diagnostics (qWarning etc.) into it.
"""
import logging
import os
import sys
from typing import Optional, Union

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from albedoanalysis import config

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    """Translate a level name such as 'debug' into a logging constant."""
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def _qt_message_handler(msg_type, context, message: str) -> None:
    logging.getLogger("albedoanalysis.qt").log(_QT_LEVELS.get(msg_type, logging.INFO), message)


def setup_logging(level: Union[int, str, None] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the logger for the 'albedoanalysis' namespace.

    Args:
        level: Logging level as a constant or a name. When omitted it is read
            from the ALBEDO_LOG_LEVEL environment variable (default INFO).
        log_file: Optional path to save logs to a file.
    """
    if level is None:
        level = os.environ.get(config.LOG_LEVEL_ENV)
    if not isinstance(level, int):
        level = level_from_name(level)

    logger = logging.getLogger("albedoanalysis")
    logger.setLevel(level)

    # Avoid duplicate handlers when setup runs twice in one process
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # pyqtgraph is chatty at DEBUG
    logging.getLogger("pyqtgraph").setLevel(max(level, logging.WARNING))
    qInstallMessageHandler(_qt_message_handler)

    logger.info(f"Logging initialized at {logging.getLevelName(level)}.")
    return logger
