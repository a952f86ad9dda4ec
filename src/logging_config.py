"""Structured logging configuration.

JSON output for production, human-readable for development.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from src.config import Environment, get_settings

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if extra:
            log_data["extra"] = extra

        if record.funcName:
            log_data["function"] = record.funcName
        if record.pathname:
            log_data["file"] = f"{record.pathname}:{record.lineno}"

        return json.dumps(log_data, default=str, ensure_ascii=False)


class DevFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt=self.DATE_FORMAT)


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
) -> logging.Logger:
    """Configure application logging.

    Args:
        level: Log level override (default from settings).
        json_output: Force JSON output (default based on environment).

    Returns:
        Root logger instance.
    """
    settings = get_settings()

    log_level = level or settings.log_level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    if json_output is None:
        json_output = settings.environment != Environment.DEVELOPMENT

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_output else DevFormatter())
    root_logger.addHandler(handler)

    # Model loading and HTTP clients are chatty at INFO
    for noisy in ("httpx", "httpcore", "sentence_transformers", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
