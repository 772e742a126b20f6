"""Logging setup for command-line use of the engine."""

import logging
import sys
from typing import Optional

from lendermatch.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: Optional[str] = None) -> logging.Handler:
    """
    Attach a single stderr handler to the root logger.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.LOG_LEVEL).upper())

    return handler
