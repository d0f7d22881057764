"""Correlation IDs for log records.

A correlation ID ties together every log line emitted while handling one
tool call. During server start-up an initialization ID is used instead.
"""

import contextvars
import logging
import uuid
from typing import Optional

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "feed_timeline_correlation_id", default=None
)
_initialization_correlation_id: Optional[str] = None


def generate_correlation_id() -> str:
    """Generate a new correlation ID of the form ``req_<hex>``."""
    return f"req_{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: contextvars.Token) -> None:
    _correlation_id.reset(token)


def get_correlation_id() -> Optional[str]:
    """Return the active correlation ID, falling back to the startup one."""
    return _correlation_id.get() or _initialization_correlation_id


def set_initialization_correlation_id(correlation_id: str) -> None:
    global _initialization_correlation_id
    _initialization_correlation_id = correlation_id


def clear_initialization_correlation_id() -> None:
    global _initialization_correlation_id
    _initialization_correlation_id = None


class CorrelationIdFilter(logging.Filter):
    """Attach ``record.correlation_id`` to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True
