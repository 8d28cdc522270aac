"""
Logging configuration for production use.

Console plus rotating file output for the service's loggers. Module loggers
are created with logging.getLogger(__name__), so configuring the "src" and
"backend" parents covers the whole application.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Iterable, Optional

from .config import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    logger_name: str = "duty_log",
    level: Optional[str] = None,
    logs_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        logger_name: Name of the logger (typically a package name)
        level: Level override, defaults to config.log_level
        logs_dir: Directory for the rotating log file, defaults to config.logs_dir

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Don't add handlers if logger already configured
    if logger.handlers:
        return logger

    level = (level or config.log_level).upper()
    logs_dir = logs_dir or config.logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger.setLevel(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    file_handler = logging.handlers.RotatingFileHandler(
        logs_dir / f"{logger_name}.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


def configure_application_logging(
    names: Iterable[str] = ("src", "backend"),
    level: Optional[str] = None,
) -> None:
    """Install handlers on every application package logger."""
    for name in names:
        setup_logging(name, level=level)
