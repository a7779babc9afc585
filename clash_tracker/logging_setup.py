"""Structured JSON logging for the tracker service."""

from __future__ import annotations

import json
import logging

# Record attributes passed through ``extra=`` that are copied into the payload.
CONTEXT_FIELDS = ("event_title", "query")


class JsonFormatter(logging.Formatter):
    """Render each record as a single-line JSON object.

    Per-event context attached with ``extra={"event_title": ...}`` is emitted
    as top-level keys so failing definitions can be filtered on.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """Replace the root logger's handlers with one JSON stream handler."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
