from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

LOGGER_NAME = "mxl2mid"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def setup_logging(level: int = logging.INFO) -> None:
    """JSON events on stderr; safe to call more than once."""
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger(LOGGER_NAME).setLevel(level)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _file_handler(logger: logging.Logger, path: str) -> RotatingFileHandler | None:
    for h in logger.handlers:
        if isinstance(h, RotatingFileHandler) and h.baseFilename == path:
            return h
    return None


def add_file_logging(log_file: Path, level: int = logging.INFO) -> RotatingFileHandler:
    """
    Also write the converter's events to a rotating JSON-lines file.

    The handler sits on the package logger, so only mxl2mid events land in the
    file. Calling this again for the same file returns the existing handler.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(LOGGER_NAME)
    target = str(log_file.resolve())

    existing = _file_handler(logger, target)
    if existing is not None:
        return existing

    fh = RotatingFileHandler(
        target, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8"
    )
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(fh)
    return fh


log = structlog.get_logger(LOGGER_NAME)
