"""
Application logging setup.

Library modules only call ``logging.getLogger(__name__)``. Entry points call
``setup_logging`` once to attach a console handler to the package logger.
"""

import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


# Custom theme for log levels
_LOG_THEME = Theme({
    "logging.level.debug": "dim cyan",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "bold red",
    "logging.level.critical": "bold white on red",
    "log.time": "dim",
    "log.message": "default",
    "log.path": "dim",
})

# Log output goes to stderr so command output on stdout stays clean
_console = Console(theme=_LOG_THEME, stderr=True)

ROOT_LOGGER_NAME = 'telos_matrix'


def setup_logging(
    level: str = 'WARNING',
    rich_output: bool = True,
    log_format: Optional[str] = None,
    show_path: bool = False,
) -> logging.Logger:
    """
    Setup logging for the telos_matrix package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rich_output: Use a Rich console handler instead of a plain stream handler
        log_format: Format string for the plain handler. If None, uses default format.
        show_path: Whether to show file path in Rich output

    Returns:
        The configured package logger.
    """
    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    level_value = getattr(logging, level.upper())

    if rich_output:
        handler: logging.Handler = RichHandler(
            console=_console,
            level=level_value,
            show_path=show_path,
            rich_tracebacks=True,
            markup=False,
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(log_format))
    handler.setLevel(level_value)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level_value)
    logger.handlers.clear()
    logger.addHandler(handler)
    # Prevent propagation to root logger
    logger.propagate = False
    return logger


# Silence "No handler found" warnings until setup_logging is called
logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
