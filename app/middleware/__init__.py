"""
Middleware Module
ASGI middleware for request processing
"""

from app.middleware.correlation_id import CorrelationIdMiddleware, REQUEST_ID_HEADER, get_correlation_id
from app.middleware.request_guard import RequestGuardMiddleware
from app.middleware.request_logging import RequestLoggingMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.middleware.timeout import RequestTimeoutMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "REQUEST_ID_HEADER",
    "get_correlation_id",
    "RequestGuardMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "RequestTimeoutMiddleware",
]
