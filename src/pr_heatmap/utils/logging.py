"""Logging setup for the pr_heatmap CLI."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are noisy at DEBUG
_QUIET_LOGGERS = ("urllib3", "pymongo")


def setup_logging(
    level: int = logging.WARNING, stream: TextIO = sys.stderr
) -> logging.Logger:
    """Configure the root logger with a single stream handler.

    Args:
        level: Logging level for pr_heatmap loggers
        stream: Stream the handler writes to

    Returns:
        The package logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    logger = logging.getLogger("pr_heatmap")
    logger.setLevel(level)
    return logger
