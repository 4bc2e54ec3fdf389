"""Structured Logging — JSON formatter and setup for dispatch observability.

Invariants:
    - Every JSON record carries timestamp, level, logger and message keys
    - Extra fields (order_id, courier_id, delivery_id, error_code, tick) surfaced when present
    - Settings.log_format "json" selects JSON lines; anything else gives plain text
    - setup_logging() is idempotent: repeated calls replace, never stack, its handler

Design Decisions:
    - JSONFormatter is a plain logging.Formatter subclass
    - The lifespan in main.py calls setup_logging before building the system
"""

import logging
import json
from datetime import datetime, timezone

_EXTRA_KEYS = (
    "order_id", "courier_id", "delivery_id", "error_code", "tick",
    "operation", "path",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    global _handler
    if _handler is not None:
        logging.root.removeHandler(_handler)
    _handler = logging.StreamHandler()
    if fmt == "json":
        _handler.setFormatter(JSONFormatter())
    else:
        _handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(_handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
