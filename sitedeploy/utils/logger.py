"""
Centralized logging configuration with colored output
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import colorlog


LOGS_DIR = Path("logs")

# Names of every logger created through get_logger()
_managed_loggers: set = set()


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True
) -> logging.Logger:
    """
    Set up a logger with colored console output and optional file logging.

    Args:
        name: Logger name (typically __name__ of the module)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file name (saved in logs/ directory)
        console: Whether to output to console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    # Console handler with colored output
    if console:
        console_handler = colorlog.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level.upper()))

        console_formatter = colorlog.ColoredFormatter(
            "%(log_color)s%(levelname)-8s%(reset)s %(blue)s[%(name)s]%(reset)s %(message)s",
            datefmt=None,
            reset=True,
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            },
            secondary_log_colors={},
            style='%'
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    # File handler
    if log_file:
        LOGS_DIR.mkdir(exist_ok=True)
        file_path = LOGS_DIR / log_file
        file_handler = logging.FileHandler(file_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file

        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def current_log_file() -> Path:
    """Path of today's application log file"""
    today = datetime.now().strftime("%Y-%m-%d")
    return LOGS_DIR / f"app_{today}.log"


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Get or create a logger with default configuration.

    Args:
        name: Logger name (typically __name__ of the module)
        level: Logging level

    Returns:
        Configured logger instance
    """
    _managed_loggers.add(name)
    return setup_logger(
        name=name,
        level=level,
        log_file=current_log_file().name,
        console=True
    )


def set_log_level(level: str) -> None:
    """
    Apply a log level to every logger created through get_logger().
    File handlers keep logging everything.

    Args:
        level: Logging level name
    """
    numeric = getattr(logging, level.upper())
    for name in _managed_loggers:
        logger = logging.getLogger(name)
        logger.setLevel(numeric)
        for handler in logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)


def mask_secret(value: Optional[str], visible: int = 10) -> str:
    """
    Hide all but the first characters of a secret for safe logging.

    Args:
        value: Secret value (token, key)
        visible: Number of leading characters to keep

    Returns:
        Masked representation
    """
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "<too short>"
    return value[:visible] + "..."
