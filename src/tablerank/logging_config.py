# src/tablerank/logging_config.py

"""
Logging configuration for the TableRank service.

Environment variables:
- LOG_LEVEL: DEBUG|INFO|WARNING|ERROR|CRITICAL (default INFO)

DEBUG switches to a verbose format with logger name and line number.
"""

from __future__ import annotations

import logging
import os
import sys

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

FMT_VERBOSE = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
FMT_CONCISE = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def level_from_env(default: str = "INFO") -> int:
    return _LEVELS.get(os.getenv("LOG_LEVEL", default).upper(), logging.INFO)


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once, replacing any existing handlers."""
    if level is None:
        numeric_level = level_from_env()
    else:
        numeric_level = _LEVELS.get(level.upper(), logging.INFO)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    is_debug = numeric_level <= logging.DEBUG
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(fmt=FMT_VERBOSE if is_debug else FMT_CONCISE)
    )
    root.setLevel(numeric_level)
    root.addHandler(handler)

    # Tame noisy third-party loggers unless in full debug
    logging.getLogger("aiosqlite").setLevel(logging.INFO if is_debug else logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if is_debug else logging.WARNING
    )
