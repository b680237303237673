from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Per-request values stamped onto every record emitted while handling the request.
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
actor_id_var: ContextVar[Optional[str]] = ContextVar("actor_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(correlation_id)s actor=%(actor_id)s] %(name)s: %(message)s"

# Libraries that log every statement or request at INFO.
_CHATTY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "uvicorn.access")


class RequestContextFilter(logging.Filter):
    """Copy correlation_id/actor_id from the current context onto the record ('-' when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.actor_id = actor_id_var.get() or "-"
        return True


@contextmanager
def request_context(correlation_id: Optional[str], actor_id: Optional[str]) -> Iterator[None]:
    """Bind correlation and actor ids for the duration of the block."""
    corr_token = correlation_id_var.set(correlation_id)
    actor_token = actor_id_var.set(actor_id)
    try:
        yield
    finally:
        actor_id_var.reset(actor_token)
        correlation_id_var.reset(corr_token)


# PUBLIC_INTERFACE
def configure_logging(level: int = logging.INFO) -> None:
    """
    Route all logging to stdout through a single handler carrying the request
    context. Safe to call more than once; earlier root handlers are replaced.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
