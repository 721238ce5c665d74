"""Correlation ids for tracing one workflow operation across services.

A correlation id is held in a ContextVar, so it follows an operation
across awaits and into the tasks it spawns. The lifecycle service opens a
scope per public operation; nested scopes reuse the outer id so that a
rejection, its reassignment and its notifications share one id.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

_correlation_id: ContextVar[str] = ContextVar("taskvision_correlation_id", default="")


def generate_correlation_id() -> str:
    """Return a new random correlation id."""
    return str(uuid4())


def get_correlation_id() -> str:
    """Return the current correlation id, or "" outside any scope."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation id for the current context."""
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Run a block under a correlation id.

    Args:
        correlation_id: Id to use. When omitted, the current id is kept if
            one is set, otherwise a new one is generated.

    Yields:
        The correlation id in effect inside the block.
    """
    effective = correlation_id or get_correlation_id() or generate_correlation_id()
    token = _correlation_id.set(effective)
    try:
        yield effective
    finally:
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding the current correlation id to log entries.

    An id bound explicitly on the logger wins over the context value.
    """
    correlation_id = get_correlation_id()
    if correlation_id and not event_dict.get("correlation_id"):
        event_dict["correlation_id"] = correlation_id
    return event_dict
