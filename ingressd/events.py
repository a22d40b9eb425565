from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any

LOGGER_NAME = "ingressd"
MAX_EVENTS = 200

_logger = logging.getLogger(LOGGER_NAME)
_lock = Lock()
_events: deque[dict[str, Any]] = deque(maxlen=MAX_EVENTS)
_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ContextFormatter(logging.Formatter):
    """``<ts> <LEVEL> <message> key=value ...`` with UTC timestamps."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
        parts = [f"{ts}Z", f"{record.levelname:<7}", record.getMessage()]
        context: dict[str, Any] = getattr(record, "context", {}) or {}
        parts.extend(f"{k}={v}" for k, v in context.items() if v is not None)
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter())

    _logger.setLevel(level.upper())
    _logger.handlers.clear()
    _logger.addHandler(handler)
    _logger.propagate = False

    for name in ("uvicorn", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.setLevel(level.upper())
        server_logger.handlers.clear()
        server_logger.addHandler(handler)
        server_logger.propagate = False


def log_event(level: str, message: str, **context: Any) -> None:
    """Log a domain event and keep it in the recent-events buffer.

    ``context`` carries the diagnostic fields (record, endpoint, scheme,
    zone, provider, ...). ``None`` values are dropped.
    """
    level = level.upper()
    fields = {k: v for k, v in context.items() if v is not None}
    _logger.log(_LEVELS.get(level, logging.INFO), message, extra={"context": fields})
    with _lock:
        _events.append({"ts": utc_now(), "level": level, "message": message, "context": fields})


def latest_events(limit: int = 50) -> list[dict[str, Any]]:
    with _lock:
        items = list(_events)
    items.reverse()
    return [dict(e, context=dict(e["context"])) for e in items[: max(0, limit)]]


def clear_events() -> None:
    """Empty the recent-events buffer. Test hook; nothing in the daemon calls it."""
    with _lock:
        _events.clear()
