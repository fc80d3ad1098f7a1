"""Centralized logging configuration using loguru.

Library modules only bind named loggers; sinks are installed by the
application through :func:`configure_logging`. Until then loguru's default
stderr sink applies.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} - {message}"


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Install console (and optionally file) sinks, replacing existing ones.

    Meant to be called once by the application; it also sets the default
    ``name`` extra used by the sink formats.

    Args:
        level: Minimum level for the console sink.
        log_file: Optional path of a rotating DEBUG log file.
    """
    logger.configure(extra={"name": "monodistance"})
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="50 MB",
            retention="10 days",
            level="DEBUG",
            format=FILE_FORMAT,
            enqueue=True,  # Thread-safe logging
        )


def get_logger(name: Optional[str] = None):
    """Get a logger instance bound to the given name.

    Args:
        name: Module name for the logger (usually __name__)

    Returns:
        Logger bound to ``name``, or to ``"monodistance"`` when omitted
    """
    return logger.bind(name=name or "monodistance")


__all__ = ["logger", "configure_logging", "get_logger"]
