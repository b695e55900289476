"""
GalamseyWatch - Logging Configuration
One stdout handler for the whole process, configured at API startup.
"""

import logging
import sys
from typing import Dict, Optional

from galamsey.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

# Chatty dependencies and the level they are capped at
LIBRARY_LEVELS: Dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "web3": logging.WARNING,
    "urllib3": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def _resolve_level(level: Optional[str]) -> int:
    name = (level or ("DEBUG" if settings.debug and settings.is_development else settings.log_level)).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {name}")
    return resolved


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure root logging and return the "galamsey" logger.

    Safe to call more than once; the previous handler is replaced.

    Args:
        level: Log level name, defaults to settings.log_level
            (DEBUG in development with debug enabled)
        format_string: Custom format string for log messages

    Returns:
        The package logger
    """
    log_level = _resolve_level(level)

    logging.basicConfig(
        level=log_level,
        format=format_string or LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for name, cap in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(max(cap, log_level))

    logger = logging.getLogger("galamsey")
    logger.setLevel(log_level)
    logger.debug(f"Logging configured at {logging.getLevelName(log_level)}")
    return logger
