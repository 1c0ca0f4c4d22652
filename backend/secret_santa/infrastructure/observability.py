"""Structured Logging - JSON formatter and one-shot logging setup.

Invariants:
    - Every record carries timestamp, level, logger name, and message
    - Draw context extras (draw_id, participant_id, error_code, outcome, ...)
      are emitted only when set on the record
    - setup_logging replaces handlers it installed before, never stacks them

Design Decisions:
    - ORPHANED_DRAW records are ordinary CRITICAL lines with draw_id set;
      operators search for that error_code to remediate
    - httpx request logging is lowered to WARNING: one INFO line per identity
      call would drown the provisioning summary
"""

import logging
import json
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "draw_id", "participant_id", "error_code", "outcome", "attempt",
    "participant_count", "path", "status_code",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_QUIET_LOGGERS = ("httpx", "httpcore")


def _record_extras(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in EXTRA_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_record_extras(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ContextTextFormatter(logging.Formatter):
    """Human-readable lines with draw context appended as key=value pairs."""

    def __init__(self):
        super().__init__(_TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _record_extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


_installed_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the root handler (json or text). Safe to call more than once."""
    global _installed_handler
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else ContextTextFormatter())

    root = logging.getLogger()
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    _installed_handler = handler

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
