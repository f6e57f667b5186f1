"""
CSRF Protection

Synchronizer tokens keyed by session key. Safe requests mint (or reuse) a
token which the client echoes back in X-CSRF-Token on state-changing
requests.
"""

import hmac
import secrets
from typing import Optional

import structlog

from app.services.security.token_store import TokenStore

logger = structlog.get_logger(__name__)

CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def generate_csrf_token() -> str:
    return secrets.token_hex(32)


class CsrfProtector:
    """
    Issues and validates CSRF tokens.

    A token is reused while valid; once expired, the next issue() creates a
    new one and the old token no longer validates.
    """

    def __init__(self, store: TokenStore, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def issue(self, session_key: str) -> str:
        existing = await self.store.get(session_key)
        if existing is not None:
            return existing.value

        token = generate_csrf_token()
        await self.store.set(session_key, token, self.ttl_seconds)
        logger.debug("csrf_token_issued", session_key=session_key)
        return token

    async def validate(self, session_key: str, token: Optional[str]) -> bool:
        if not token:
            return False
        stored = await self.store.get(session_key)
        if stored is None:
            return False
        return hmac.compare_digest(stored.value, token)

    async def invalidate(self, session_key: str) -> None:
        await self.store.delete(session_key)

    async def sweep(self) -> int:
        """Remove expired tokens. Returns the number removed."""
        removed = await self.store.purge_expired()
        logger.info("csrf_sweep_complete", removed=removed)
        return removed
