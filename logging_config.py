"""
Logging setup with coloredlogs.
"""

import logging
from typing import Optional

import coloredlogs

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO", format_string: Optional[str] = None):
    """
    Configure root logging with colored console output.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_string: Custom format string (optional)
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    coloredlogs.install(
        level=level.upper(),
        fmt=format_string,
        datefmt="%H:%M:%S",
        field_styles={
            'asctime': {'color': 'green'},
            'levelname': {'color': 'cyan', 'bold': True},
            'name': {'color': 'blue'},
        },
        level_styles={
            'debug': {'color': 'white'},
            'info': {'color': 'green'},
            'warning': {'color': 'yellow'},
            'error': {'color': 'red'},
            'critical': {'color': 'red', 'bold': True}
        }
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
