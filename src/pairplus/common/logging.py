"""JSON-lines logging for PairPlus.

Records passed ``extra={"uid": ..., "pair_id": ..., "platform": ...}``
carry those keys as top-level fields, so one principal or pair can be
followed across verification, sync and reconciliation.
"""

import logging
import json
import sys
from datetime import datetime, timezone

CONTEXT_FIELDS = ("uid", "pair_id", "platform")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", stream=None) -> logging.Logger:
    """Install the JSON handler on the ``pairplus`` logger once."""
    logger = logging.getLogger("pairplus")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.propagate = False
    return logger
