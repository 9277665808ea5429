"""
Request correlation IDs.

Every inbound request carries a short id that ends up in log records, error
bodies and Sentry tags so a dashboard user or SDK integrator can quote it.
"""

import uuid
from contextvars import ContextVar

# Request-scoped correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a short correlation ID.

    Returns:
        8 lowercase hex characters (e.g. "9f3a02bc").
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """Return the current request's correlation ID, or "" outside a request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Bind a correlation ID to the current context.

    Args:
        correlation_id: ID received in X-Correlation-ID or freshly generated.
    """
    correlation_id_var.set(correlation_id)
