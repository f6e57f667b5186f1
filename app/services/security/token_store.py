"""
Token Store

Keyed storage with expiry, shared by the CSRF protector and the rate limiter.
Two backends:

- MemoryTokenStore: a dict in this process. Mutated only from the event loop,
  so no locking. Tokens issued here are invisible to other processes: behind a
  load balancer a CSRF token minted by one instance fails validation on
  another, and rate-limit counters are per instance rather than global.
- RedisTokenStore: keys live in Redis with native TTLs, so every instance
  sees the same tokens and counters.

The backend is chosen by TOKEN_STORE_BACKEND (see create_token_store).
CSRF and rate limiting always get separate store instances.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis.asyncio as redis
import structlog

from app.config import Settings

logger = structlog.get_logger(__name__)


@dataclass
class TokenRecord:
    value: str
    expires_at: float  # epoch seconds

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class TokenStore:
    """Interface for TTL key-value storage."""

    async def get(self, key: str) -> Optional[TokenRecord]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl_seconds: float) -> TokenRecord:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def increment(self, key: str, ttl_seconds: float) -> int:
        """Increment a counter, creating it with the given TTL on first use."""
        raise NotImplementedError

    async def purge_expired(self) -> int:
        """Remove expired records. Returns the number removed."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend connections."""


class MemoryTokenStore(TokenStore):
    """
    In-process token store.

    Expired records are treated as absent on read and removed lazily, or in
    bulk by purge_expired().
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._records: Dict[str, TokenRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def get(self, key: str) -> Optional[TokenRecord]:
        record = self._records.get(key)
        if record is None:
            return None
        if record.is_expired(self._clock()):
            del self._records[key]
            return None
        return record

    async def set(self, key: str, value: str, ttl_seconds: float) -> TokenRecord:
        record = TokenRecord(value=value, expires_at=self._clock() + ttl_seconds)
        self._records[key] = record
        return record

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    async def increment(self, key: str, ttl_seconds: float) -> int:
        record = await self.get(key)
        if record is None:
            await self.set(key, "1", ttl_seconds)
            return 1
        count = int(record.value) + 1
        record.value = str(count)
        return count

    async def purge_expired(self) -> int:
        now = self._clock()
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]
        return len(expired)


class RedisTokenStore(TokenStore):
    """
    Redis-backed token store for multi-instance deployments.

    Key format: {prefix}:{key}
    """

    def __init__(self, redis_client, prefix: str, clock: Callable[[], float] = time.time):
        """
        Args:
            redis_client: redis.asyncio.Redis instance (decode_responses=True)
            prefix: Namespace so CSRF tokens and counters never collide
        """
        self.redis = redis_client
        self.prefix = prefix
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[TokenRecord]:
        full_key = self._key(key)
        value = await self.redis.get(full_key)
        if value is None:
            return None
        ttl_ms = await self.redis.pttl(full_key)
        if ttl_ms == -2:
            # expired between GET and PTTL
            return None
        return TokenRecord(value=str(value), expires_at=self._clock() + max(ttl_ms, 0) / 1000.0)

    async def set(self, key: str, value: str, ttl_seconds: float) -> TokenRecord:
        await self.redis.set(self._key(key), value, px=max(1, int(ttl_seconds * 1000)))
        return TokenRecord(value=value, expires_at=self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.redis.delete(self._key(key))

    async def increment(self, key: str, ttl_seconds: float) -> int:
        full_key = self._key(key)
        count = int(await self.redis.incr(full_key))
        if count == 1:
            await self.redis.pexpire(full_key, max(1, int(ttl_seconds * 1000)))
        return count

    async def purge_expired(self) -> int:
        # Redis expires keys on its own
        return 0

    async def close(self) -> None:
        await self.redis.aclose()


def create_token_store(settings: Settings, namespace: str) -> TokenStore:
    """
    Build a token store for one concern ("csrf" or "rate_limit").

    Uses Redis when TOKEN_STORE_BACKEND=redis and REDIS_URL is set,
    the in-process store otherwise.
    """
    if settings.token_store_backend == "redis":
        if not settings.redis_url:
            logger.warning(
                "token_store_fallback",
                namespace=namespace,
                reason="REDIS_URL not configured",
                backend="memory",
            )
            return MemoryTokenStore()

        client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
        logger.info("token_store_configured", namespace=namespace, backend="redis")
        return RedisTokenStore(client, prefix=f"connector_storefront:{namespace}")

    if settings.is_production:
        logger.warning(
            "token_store_process_local",
            namespace=namespace,
            hint="tokens and counters are per instance; use TOKEN_STORE_BACKEND=redis behind a load balancer",
        )
    return MemoryTokenStore()
