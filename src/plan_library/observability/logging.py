"""Centralized logging setup for the plan library.

Log records are emitted as JSON lines. Structured context is attached
through ``extra={"extra_fields": {...}}``; any other custom attribute set on
the record is copied into the envelope as well.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional


class JsonFormatter(logging.Formatter):
    """Logging formatter that outputs one JSON object per record."""

    def __init__(self, *args, service: str = "plan_library", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        # Standard LogRecord attributes are not copied into the envelope.
        dummy_record = logging.LogRecord(
            "name", logging.INFO, "path", 1, "msg", None, None
        )
        self._reserved_attrs = set(dummy_record.__dict__.keys())
        self._reserved_attrs.update({"message", "asctime", "stack_info"})

    def format(self, record: logging.LogRecord) -> str:
        """Formats a log record as a JSON string."""
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in self._reserved_attrs:
                continue
            if key == "extra_fields" and isinstance(value, dict):
                log_entry.update(value)
            else:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging(level: Optional[str] = None, stream=None) -> None:
    """Initializes the logging system.

    Args:
        level: Optional log level override. Defaults to the LOG_LEVEL
            environment variable or INFO.
        stream: Output stream for the handler. Defaults to stdout.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    logger = logging.getLogger()
    logger.setLevel(log_level)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    # Replace existing handlers so repeated setup does not duplicate output.
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Retrieves a logger with the given name.

    Args:
        name: The name of the logger (typically __name__).

    Returns:
        A logging.Logger instance.
    """
    return logging.getLogger(name)


def event_fields(event: str, **fields: Any) -> dict[str, Any]:
    """Builds the ``extra`` mapping for a structured log call.

    Args:
        event: Machine-readable event name, e.g. 'step.failed'.
        **fields: Additional context (tenant, plan and execution ids...).
            Fields whose value is None are dropped.

    Returns:
        A dict suitable for the ``extra`` argument of a logging call.
    """
    payload = {"event": event}
    payload.update({k: v for k, v in fields.items() if v is not None})
    return {"extra_fields": payload}
