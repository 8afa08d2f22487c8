"""
Logging setup shared by the package's entry points.

Records carry a correlation id and an organization id taken from
contextvars; ``log_context`` binds them for the duration of a block.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | org=%(org_id)s | %(message)s"
)

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
org_id_var: ContextVar[Optional[str]] = ContextVar("org_id", default=None)


class LoggingContextFilter(logging.Filter):
    """Copy the bound correlation and organization ids onto each record ("-" when unbound)."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.correlation_id = correlation_id_var.get() or "-"
        record.org_id = org_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
@contextmanager
def log_context(correlation_id: Optional[str] = None, org_id: Optional[str] = None) -> Iterator[None]:
    """
    Bind ids to log records emitted inside the block; unset arguments keep the outer value.

    Usage:
        with log_context(correlation_id=request_id, org_id=group.org_id):
            await groups.update(group)
    """
    tokens = []
    if correlation_id is not None:
        tokens.append((correlation_id_var, correlation_id_var.set(correlation_id)))
    if org_id is not None:
        tokens.append((org_id_var, org_id_var.set(org_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


# PUBLIC_INTERFACE
def configure_logging(level: int = logging.INFO) -> None:
    """Send root logging to stdout with LOG_FORMAT, replacing any handlers installed earlier."""
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)
