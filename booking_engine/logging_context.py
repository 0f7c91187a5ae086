"""Request ID logging context for tracing engine operations.

Provides a request_id-aware logger that attaches a correlation ID to every
log message, making it easy to follow a single booking request through
validation, conflict detection and persistence.

Usage:
    from booking_engine.logging_context import get_request_logger, set_request_id

    set_request_id("REQ-abc123")
    logger = get_request_logger(__name__)
    logger.info("Creating booking")  # record.request_id == "REQ-abc123"
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_DEFAULT_REQUEST_ID = "NO_REQUEST_ID"
_request_id: ContextVar[str] = ContextVar("request_id", default=_DEFAULT_REQUEST_ID)


def set_request_id(request_id: str) -> None:
    """Set the correlation ID for the current context."""
    _request_id.set(request_id)


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of one engine operation.

    An ID already set by the caller is kept; otherwise a fresh one is
    generated. The previous value is restored on exit.
    """
    current = _request_id.get()
    if request_id is None and current != _DEFAULT_REQUEST_ID:
        yield current
        return
    token = _request_id.set(request_id or f"REQ-{uuid.uuid4().hex[:8]}")
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached.

    The filter adds ``request_id`` to each record so formatters can
    include ``%(request_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
