import logging
import sys
from typing import Optional, TextIO

from config import LOG_FORMAT, LOG_LEVEL


def make_logger(name: str, stream: Optional[TextIO] = None) -> logging.Logger:
    """Return the named logger, attaching a console handler on first use."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)
    h = logging.StreamHandler(stream or sys.stdout)
    h.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(h)
    return logger


def set_verbose(logger: logging.Logger, verbose: bool) -> None:
    logger.setLevel(logging.DEBUG if verbose else LOG_LEVEL)
