"""
Security Services
Token storage, CSRF protection, rate limiting, session keys and input sanitization
"""

from app.services.security.token_store import (
    MemoryTokenStore,
    RedisTokenStore,
    TokenRecord,
    TokenStore,
    create_token_store,
)
from app.services.security.csrf import CSRF_HEADER, SAFE_METHODS, CsrfProtector
from app.services.security.rate_limit import DEFAULT_RULES, RateLimiter, RateLimitResult, RateLimitRule
from app.services.security.session import derive_session_key, normalize_client_ip

__all__ = [
    "MemoryTokenStore",
    "RedisTokenStore",
    "TokenRecord",
    "TokenStore",
    "create_token_store",
    "CSRF_HEADER",
    "SAFE_METHODS",
    "CsrfProtector",
    "DEFAULT_RULES",
    "RateLimiter",
    "RateLimitResult",
    "RateLimitRule",
    "derive_session_key",
    "normalize_client_ip",
]
