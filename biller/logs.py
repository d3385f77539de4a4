"""
Logging setup for the biller.

The terminal UI owns the screen, so records go to a file. Two formats are
available: a human-readable line format and a JSON format for shipping logs
elsewhere.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from biller.config import LOG_FORMAT, LOG_LEVEL, LOG_PATH

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_configured = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def configure_logging(
    path: str | Path = LOG_PATH,
    level: str = LOG_LEVEL,
    fmt: str = LOG_FORMAT,
) -> None:
    """Attach a file handler to the `biller` logger. Safe to call more than once."""
    global _configured
    if _configured:
        return

    log_file = Path(path)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger("biller")
    root.setLevel(level.upper())
    root.addHandler(handler)
    _configured = True
