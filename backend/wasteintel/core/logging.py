"""
logging.py — Request-Scoped Logging

Purpose:
- One console format for the API: timestamp | level | module | request id | message.
- Tag every record emitted while serving a request with that request's id
  (taken from the X-Request-ID header, or generated), so a failed chart
  aggregation or enrichment retry can be traced back to the call that caused it.
- Keep the HTTP client libraries used by supabase-py and the Wikipedia client
  quiet at INFO.

Usage:
    from wasteintel.core.logging import get_logger
    logger = get_logger(__name__)
"""

import logging
import uuid
from contextvars import ContextVar, Token
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | req=%(request_id)s | %(message)s"

# Outside a request (startup, scripts) records carry "-"
NO_REQUEST = "-"

QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "urllib3")

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST)


class RequestIdFilter(logging.Filter):
    """Stamp `record.request_id` from the current request context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


# -----------------------------------------------------------------------------
# Request context
# -----------------------------------------------------------------------------

def bind_request_id(request_id: Optional[str] = None) -> Token:
    """Set the id for the current request; returns a token for `reset_request_id`."""
    return _request_id.set((request_id or "").strip()[:64] or uuid.uuid4().hex[:12])


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> str:
    return _request_id.get()


# -----------------------------------------------------------------------------
# Setup
# -----------------------------------------------------------------------------

def configure_logging(level: str = "INFO") -> None:
    """
    Install the console handler once, at app startup (main.py) or in a script.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
