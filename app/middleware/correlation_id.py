"""
Correlation ID Middleware
Assigns every request an X-Request-ID (or accepts the caller's) for log tracing
"""

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id

REQUEST_ID_HEADER = "X-Request-ID"

__all__ = ["CorrelationIdMiddleware", "REQUEST_ID_HEADER", "get_correlation_id"]


def get_correlation_id() -> str:
    """
    Get current correlation ID from async context.

    Returns:
        str: The correlation ID or 'none' outside a request
    """
    return correlation_id.get() or 'none'
