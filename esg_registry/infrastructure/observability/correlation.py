"""Correlation ID management for request tracing.

Correlation ids live in a context variable so every log line emitted while
a pipeline runs carries the id of the request that started it. Tasks
created by ``asyncio.gather`` copy the current context, so the per-row
ledger reads in a merge log under the same id.

Usage:
    # In middleware (request start)
    set_correlation_id(request.headers.get("X-Correlation-ID") or generate_correlation_id())

    # Outside HTTP (workers, scripts)
    with correlation_scope() as correlation_id:
        await pipeline.run(...)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# Empty string means "no request context".
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """Generate a new correlation ID (UUID4 string)."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Return the current correlation ID, or an empty string if unset."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block, then restore the previous one.

    Args:
        correlation_id: ID to use; a new one is generated when omitted.

    Yields:
        The correlation ID in effect inside the block.
    """
    value = correlation_id or generate_correlation_id()
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding ``correlation_id`` to every log entry.

    Leaves the event untouched when no correlation ID is set, and never
    overrides an explicitly bound ``correlation_id``.
    """
    correlation_id = get_correlation_id()
    if correlation_id and "correlation_id" not in event_dict:
        event_dict["correlation_id"] = correlation_id
    return event_dict
