"""Logging utilities for cotasks."""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a cotasks module.

    Args:
        name: the name of the logger, usually the module's ``__name__``

    Returns:
        a logger instance
    """
    return logging.getLogger(name)


def configure_logging(level: LogLevel | None = None) -> None:
    """Configure logging for applications built on cotasks.

    The library itself never installs handlers; call this from an application
    entry point.

    Args:
        level: the log level to use, defaults to ``TaskSettings.log_level``
    """
    if level is None:
        from cotasks.settings import get_settings

        level = get_settings().log_level

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )
