"""
Structured logging for the todo service.

JSON lines by default; a plain text format is available for local runs.
Known extra fields (rpc_method, todo_id, error_code, path) are copied into
the JSON record when a log call provides them.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

_EXTRA_FIELDS = ("rpc_method", "todo_id", "error_code", "path")


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


# PUBLIC_INTERFACE
def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure the root logger; calling it again replaces the handler installed earlier."""
    handler = logging.StreamHandler()
    handler.set_name("todo_rpc")
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "todo_rpc":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
