"""
Structured logging for scangate

Every module logs through a child of the ``scangate`` logger. The package
logger writes one JSON object per line (python-json-logger) or, for local
development, plain text. Log extras such as ``uid``, ``campaign_id``,
``scan_id`` and ``code`` become top-level JSON keys.
"""
import logging
import os
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import IO, Iterator

from pythonjsonlogger import jsonlogger

DEFAULT_LOGGER_NAME = "scangate"

JSON_FIELDS = "%(timestamp)s %(level)s %(logger)s %(message)s"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class ScanGateJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for scangate log lines.

    Adds a UTC millisecond ``timestamp`` (same text form as scan timestamps),
    the upper-case ``level``, the ``logger`` name, the emitting ``function``
    and ``thread_id`` (admissions run on worker threads).
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_record["timestamp"] = created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z"
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = record.funcName
        log_record["thread_id"] = record.thread


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Configure a logger with a single stream handler

    Args:
        name: Logger name
        level: Level name (defaults to env var LOG_LEVEL or INFO)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT or json)
        stream: Output stream (defaults to stdout)

    Returns:
        Configured logger instance
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    if format_type == "json":
        handler.setFormatter(ScanGateJsonFormatter(JSON_FIELDS))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    logger.addHandler(handler)

    # Module loggers ("scangate.x") propagate to the package logger, which
    # stops there
    logger.propagate = name != DEFAULT_LOGGER_NAME

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Get a scangate logger, configuring the package logger on first use

    Args:
        name: Logger name, usually ``__name__``

    Returns:
        Logger instance
    """
    package_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not package_logger.handlers:
        setup_logger(DEFAULT_LOGGER_NAME)
    return logging.getLogger(name)


@contextmanager
def log_operation(
    operation_name: str,
    logger: logging.Logger | None = None,
    **extra_fields,
) -> Iterator[None]:
    """
    Log the start, outcome and duration of an operation

    Usage:
        with log_operation("CSV export", logger=logger, date="2024-06-10"):
            rows = list(views.csv_rows())

    Exceptions are logged with ``exc_info`` and re-raised.
    """
    logger = logger or get_logger()
    fields = {"operation": operation_name, **extra_fields}
    started = time.perf_counter()

    logger.debug(f"Starting: {operation_name}", extra=fields)
    try:
        yield
    except Exception as e:
        logger.error(
            f"Failed: {operation_name}",
            extra={
                **fields,
                "status": "error",
                "error_type": type(e).__name__,
                "duration_seconds": round(time.perf_counter() - started, 3),
            },
            exc_info=True,
        )
        raise

    logger.info(
        f"Completed: {operation_name}",
        extra={
            **fields,
            "status": "success",
            "duration_seconds": round(time.perf_counter() - started, 3),
        },
    )
