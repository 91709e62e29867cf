"""Logging configuration.

- readable: one line per record for local development
- json: one JSON object per record for log aggregation
"""
import json
import logging
import sys
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


READABLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level_name: str = "INFO", fmt: str = "readable") -> None:
    """Install a single stderr handler on the root logger."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    formatter = JSONFormatter() if fmt == "json" else logging.Formatter(READABLE_FORMAT, "%H:%M:%S")

    root = logging.getLogger()
    # Avoid duplicate handlers when the app is imported more than once
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("sqlalchemy.engine", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
