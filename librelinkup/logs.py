# -*- coding: utf-8 -*-

import logging
import sys
from datetime import datetime

LOGGER_NAME = "librelinkup"

# thread name tells CLI/foreground lines apart from the "librelinkup-poll" thread
LOG_FORMAT = "%(asctime)s [%(levelname)s] (%(threadName)s) %(message)s"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def parse_log_level(s: str) -> int:
    """Lenient level name; anything unknown falls back to INFO."""
    return _LEVELS.get((s or "").strip().upper(), logging.INFO)


class TZFormatter(logging.Formatter):
    """Timestamps in the configured zoneinfo zone, millisecond precision."""

    def __init__(self, fmt: str, tz):
        super().__init__(fmt=fmt, datefmt=None)
        self._tz = tz

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self._tz) if self._tz else datetime.fromtimestamp(record.created)
        return dt.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def setup_logger(log_level: str, tz, stream=None) -> logging.Logger:
    """
    Installs a single stderr handler on the package logger. Called once by the
    CLI; library code only ever logs through get_logger() or an injected logger.
    """
    logger = get_logger()
    logger.setLevel(parse_log_level(log_level))
    logger.handlers.clear()
    logger.propagate = False

    h = logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(TZFormatter(LOG_FORMAT, tz))
    logger.addHandler(h)

    return logger
