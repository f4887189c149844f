"""Access Log Analyzer - Logging setup"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = 'accesslog'


def setup_logging(level: str = 'WARNING', console: Optional[Console] = None) -> logging.Logger:
    """Route the package loggers through rich. Safe to call more than once."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        log_time_format='%Y-%m-%d %H:%M:%S',
    )
    handler.setFormatter(logging.Formatter('%(name)s: %(message)s'))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
