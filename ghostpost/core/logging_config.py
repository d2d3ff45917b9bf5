"""
Logging setup.

Development: human-readable console lines.
Production: one JSON object per line on stdout, ready for log aggregation.

Driven by LOG_FORMAT ("json" or "console") and LOG_LEVEL.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from .config import get_settings

_CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging() -> None:
    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_ghostpost", False):
            root.removeHandler(existing)
    handler._ghostpost = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(settings.log_level)
    # SQL echo is controlled by the engine, not by the application level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
