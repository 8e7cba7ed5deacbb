"""
Correlation ID generation and context management.

Every domain exception and log record carries the correlation ID of the
unit of work that produced it, so an audit entry, a log line and a Sentry
event for the same admin action can be tied together.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Context variable for request-scoped correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a short, unique correlation ID.

    Returns:
        8-character hexadecimal string.
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """
    Get the current unit of work's correlation ID.

    Returns:
        The correlation ID for the current context, or empty string if not set.
    """
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to bind.
    """
    correlation_id_var.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of a block, then restore the previous one.

    Args:
        correlation_id: ID supplied by the caller (e.g. an inbound header).
            A new one is generated when omitted.

    Yields:
        The correlation ID in effect inside the block.
    """
    value = correlation_id or generate_correlation_id()
    token = correlation_id_var.set(value)
    try:
        yield value
    finally:
        correlation_id_var.reset(token)
