from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from threading import Lock

_configured = False
_config_lock = Lock()


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra_fields`` are merged into the payload."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        extra = getattr(record, "extra_fields", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int | None = None) -> None:
    global _configured
    with _config_lock:
        root = logging.getLogger("actor_monitor")
        if level is None:
            from actor_monitor.config import settings

            level = settings.LOG_LEVEL
        root.setLevel(level.upper() if isinstance(level, str) else level)
        if _configured:
            return
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        _configured = True


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_logging", "get_logger"]
