"""Logging configuration helpers for the cityscraper application."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_DIR = os.getenv("CITYSCRAPER_LOG_DIR", "logs")
LOG_FILE = os.path.join(LOG_DIR, "cityscraper.log")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(locality)s]: %(message)s"
DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class LocalityFilter(logging.Filter):
    """Default the ``locality`` field for records logged without one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "locality"):
            record.locality = "-"
        return True


def _build_handlers() -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)
    locality_filter = LocalityFilter()

    os.makedirs(LOG_DIR, exist_ok=True)
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            LOG_FILE,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        ),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(DEFAULT_LEVEL)
        handler.addFilter(locality_filter)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Return a logger writing to the console and ``logs/cityscraper.log``.

    Records may carry ``extra={"locality": ...}``; it is rendered in brackets
    after the logger name.
    """

    logger = logging.getLogger(name)
    logger.setLevel(DEFAULT_LEVEL)
    logger.propagate = False

    if not logger.handlers:
        for handler in _build_handlers():
            logger.addHandler(handler)

    return logger
