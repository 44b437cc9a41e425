"""Structured Logging — JSON formatter and setup for service observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (operation, collection, record_id, count, error_code)
      surfaced when present
    - JSON format by default, human-readable on request

Design Decisions:
    - Standard logging with a JSON formatter: modules only ever call
      logging.getLogger(__name__)
    - setup_logging called once by the bootstrap (crudstore.main), never at import
"""

import logging
import json
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "operation", "collection", "id_field", "record_id", "count", "error_code",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Configure the crudstore logger; returns the installed handler."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    package_logger = logging.getLogger("crudstore")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
