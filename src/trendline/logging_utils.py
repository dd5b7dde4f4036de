"""Package-wide logging setup for trendline modules."""

from __future__ import annotations

import logging
from typing import Optional

from .config import get_settings

PACKAGE_LOGGER = "trendline"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _package_logger() -> logging.Logger:
    package = logging.getLogger(PACKAGE_LOGGER)
    if not package.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        package.addHandler(handler)
        package.setLevel(get_settings().LOG_LEVEL)
    return package


def configure_logging(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the ``trendline`` namespace.

    The single stream handler lives on the package logger; module loggers
    propagate to it. The level starts at ``TRENDLINE_LOG_LEVEL``.
    """

    package = _package_logger()
    if not name or name == PACKAGE_LOGGER:
        return package
    if not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def set_log_level(level: str | int) -> None:
    """Override the package log level, e.g. from a ``--log-level`` flag."""

    if isinstance(level, str):
        level = level.strip().upper()
    _package_logger().setLevel(level)
