"""
Rate Limiting

Fixed-window request counters per route class and session key. A window is
identified by floor(now / window_seconds), so counters expire on their own
when the window rolls over.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import structlog

from app.services.security.token_store import TokenStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    """
    A route class and its limit.

    A rule matches when the path starts with path_prefix, contains every
    entry of path_contains (if any), and the method is in methods (None
    matches every method).
    """

    name: str
    max_requests: int
    window_seconds: int
    path_prefix: str = "/api"
    methods: Optional[Tuple[str, ...]] = None
    path_contains: Tuple[str, ...] = ()

    def matches(self, method: str, path: str) -> bool:
        if not path.startswith(self.path_prefix):
            return False
        if self.methods is not None and method.upper() not in self.methods:
            return False
        return all(fragment in path for fragment in self.path_contains)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # epoch seconds when the window ends
    rule: str
    retry_after: int = 0  # seconds until the window ends

    def headers(self) -> dict:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


WRITE_METHODS = ("POST", "PUT", "PATCH", "DELETE")

# First match wins, so specific rules come before the catch-all
DEFAULT_RULES: Tuple[RateLimitRule, ...] = (
    RateLimitRule("auth_login", 5, 60, path_contains=("/login",), methods=("POST",)),
    RateLimitRule("auth_register", 5, 60, path_contains=("/register",), methods=("POST",)),
    RateLimitRule("account_recovery", 5, 60, path_prefix="/api/users/password", methods=("POST",)),
    RateLimitRule("verification_resend", 5, 60, path_prefix="/api/users/verify-email", methods=("POST",)),
    RateLimitRule("orders_create", 10, 60, path_prefix="/api/orders", methods=("POST",)),
    RateLimitRule("orders_update", 20, 60, path_prefix="/api/orders", methods=("PUT",)),
    RateLimitRule("submissions", 10, 60, path_prefix="/api/inquiries", methods=("POST",)),
    RateLimitRule("catalog_writes", 20, 60, path_prefix="/api/products", methods=WRITE_METHODS),
    RateLimitRule("category_writes", 20, 60, path_prefix="/api/categories", methods=WRITE_METHODS),
    RateLimitRule("admin", 200, 60, path_prefix="/api/admin"),
    RateLimitRule("api", 100, 60, path_prefix="/api"),
)


class RateLimiter:
    """
    Fixed-window limiter over a TokenStore.

    Counter key: {rule}:{session_key}:{window_index}
    """

    def __init__(
        self,
        store: TokenStore,
        rules: Sequence[RateLimitRule] = DEFAULT_RULES,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.rules = tuple(rules)
        self._clock = clock

    def rule_for(self, method: str, path: str) -> Optional[RateLimitRule]:
        for rule in self.rules:
            if rule.matches(method, path):
                return rule
        return None

    async def hit(self, rule: RateLimitRule, session_key: str) -> RateLimitResult:
        """
        Count one request against the rule and decide whether it may proceed.

        The (max_requests + 1)-th request inside a window is rejected.
        """
        now = self._clock()
        window_index = math.floor(now / rule.window_seconds)
        window_end = (window_index + 1) * rule.window_seconds
        key = f"{rule.name}:{session_key}:{window_index}"

        count = await self.store.increment(key, ttl_seconds=window_end - now)
        allowed = count <= rule.max_requests

        result = RateLimitResult(
            allowed=allowed,
            limit=rule.max_requests,
            remaining=max(0, rule.max_requests - count),
            reset_at=int(math.ceil(window_end)),
            rule=rule.name,
            retry_after=max(1, int(math.ceil(window_end - now))),
        )

        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                rule=rule.name,
                session_key=session_key,
                limit=rule.max_requests,
                count=count,
            )
        return result
