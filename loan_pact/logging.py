"""Logging setup for loan-pact processes.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed once by the entry point through ``setup_logging`` or
``configure_from``. Log calls may attach agreement, user or sweep
context with ``extra={"agreement_id": ...}``; the JSON format emits
those as top-level fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

from loan_pact.exceptions import ConfigurationError

STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attributes promoted into JSON output when present
CONTEXT_FIELDS = ("agreement_id", "user_id", "notification_id", "sweep", "error_code")

# Client libraries that are chatty at INFO
QUIET_LOGGERS = ("confluent_kafka", "psycopg", "faker")


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
    stream: IO[str] | None = None,
) -> None:
    """Install a single stream handler on the root logger.

    Parameters
    ----------
    level : str
        Level name; unknown names fall back to INFO.
    format_type : str
        ``"standard"`` for pipe-separated text or ``"json"`` for one JSON
        object per line.
    stream : IO[str] | None
        Destination, stdout by default.

    Raises
    ------
    ConfigurationError
        If ``format_type`` is not recognised.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    elif format_type == "standard":
        formatter = logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)
    else:
        raise ConfigurationError(f"Unknown log format {format_type!r}; expected 'standard' or 'json'")

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    logging.getLogger("loan_pact").setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from(config: Any) -> None:
    """``setup_logging`` with the level and format of a ``LoanPactConfig``."""
    setup_logging(config.log_level, config.log_format)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with domain context promoted to fields."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                data[name] = value

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        # Free-form context under ``extra={"extra": {...}}``
        if isinstance(getattr(record, "extra", None), dict):
            for key, value in record.extra.items():
                data.setdefault(key, value)

        return json.dumps(data, default=str, ensure_ascii=False)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``; a thin alias kept for scripts."""
    return logging.getLogger(name)
