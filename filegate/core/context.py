"""
Request context using contextvars.

Provides task-local context storage for:
- Correlation ID
- Caller ID
- Container
"""

import contextvars
from typing import Any

# Context variables
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)
caller_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "caller_id", default=None
)
container_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "container", default=None
)


def set_request_context(
    correlation_id: str | None = None,
    caller_id: str | None = None,
    container: str | None = None,
) -> None:
    """Set request context variables."""
    if correlation_id:
        correlation_id_var.set(correlation_id)
    if caller_id:
        caller_id_var.set(caller_id)
    if container:
        container_var.set(container)


def get_request_context() -> dict[str, Any]:
    """Get the populated request context as a dictionary."""
    context = {
        "correlation_id": correlation_id_var.get(),
        "caller_id": caller_id_var.get(),
        "container": container_var.get(),
    }
    return {key: value for key, value in context.items() if value is not None}


def get_correlation_id() -> str | None:
    """Correlation ID of the request being served, if any."""
    return correlation_id_var.get()


def clear_request_context() -> None:
    """Clear all context variables."""
    correlation_id_var.set(None)
    caller_id_var.set(None)
    container_var.set(None)
