"""
Correlation IDs carried in a ContextVar.

An HTTP request is tagged with its X-Correlation-ID (or a fresh hex ID);
a pipeline run is tagged with its job ID. The log filter reads the
current value so every record from that unit of work shares it.

Dependencies: contextvars
System role: Request and job tracing in log output
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Tag the current context, generating an ID when none is given; returns it."""
    value = correlation_id or uuid.uuid4().hex
    correlation_id_ctx.set(value)
    return value


def get_correlation_id() -> str:
    """Current ID, or "" outside any tagged unit of work."""
    return correlation_id_ctx.get()


def clear_correlation_id() -> None:
    correlation_id_ctx.set("")


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Tag the enclosed block and restore the previous ID on exit.

    Args:
        correlation_id: ID to use (a new hex ID if None or empty)

    Yields:
        str: The ID in effect inside the block
    """
    value = correlation_id or uuid.uuid4().hex
    token = correlation_id_ctx.set(value)
    try:
        yield value
    finally:
        correlation_id_ctx.reset(token)
