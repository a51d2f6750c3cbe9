"""
Structured logging configuration for incrfuzz.

Provides text or JSON logs with a trace_id field carrying the short id of
the commit being replayed.

Environment Variables:
    INCRFUZZ_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: WARNING
    INCRFUZZ_LOG_FORMAT: Log format (json, text) - default: text

Usage:
    from incrfuzz_cli.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, trace_id="1a2b3c4")
    logger.info("checking out")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger


class TraceIDFilter(logging.Filter):
    """
    Logging filter that adds trace_id to all log records.

    Ensures all logs have a trace_id field, even if not set via LoggerAdapter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "-"  # type: ignore
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logger.

    Args:
        level: Overrides INCRFUZZ_LOG_LEVEL when given

    Logs go to stderr so they never interleave with streamed cargo output.
    """
    log_level = (level or os.getenv("INCRFUZZ_LOG_LEVEL", "WARNING")).upper()
    log_format = os.getenv("INCRFUZZ_LOG_FORMAT", "text").lower()

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    numeric_level = level_map.get(log_level, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.addFilter(TraceIDFilter())

    if log_format == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger with optional trace_id for correlation.

    Args:
        name: Logger name (typically __name__)
        trace_id: Short commit id, when the log concerns one commit

    Returns:
        LoggerAdapter with trace_id in extra fields
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"trace_id": trace_id or "-"})
