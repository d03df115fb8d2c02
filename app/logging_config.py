"""Structured JSON logging for Google Cloud Logging integration.

Cloud Run captures structured JSON from stdout as Cloud Logging entries.
Records logged with ``extra={"game_id": ...}`` carry the game identifier as
a top-level field so catalog activity can be filtered per game.
"""

import json
import logging
import sys

# Extra record attributes promoted to top-level JSON fields.
_EXTRA_FIELDS = ("game_id", "user_id", "blob_name")


class CloudJSONFormatter(logging.Formatter):
    """Formats log records as JSON for Cloud Logging ingestion."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: int | str = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CloudJSONFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    # The Google client libraries are chatty at INFO about channel setup.
    logging.getLogger("google").setLevel(max(root.level, logging.WARNING))
