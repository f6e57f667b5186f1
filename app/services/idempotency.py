"""
Idempotency Service
Database-backed replay protection for POST requests carrying an Idempotency-Key header
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError

from app.database import Database
from app.models.idempotency_key import IdempotencyKey

logger = structlog.get_logger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"
DEFAULT_TTL_SECONDS = 24 * 60 * 60
MAX_KEY_LENGTH = 200

_table = IdempotencyKey.__table__


def scoped_idempotency_key(operation: str, owner: str, client_key: str) -> str:
    """
    Scope a client-supplied key to an operation and caller.

    Format: {operation}:{owner}:{client_key}

    Two callers reusing the same header value never see each other's
    responses.
    """
    return f"{operation}:{owner}:{client_key[:MAX_KEY_LENGTH]}"


@dataclass(frozen=True)
class CachedResponse:
    body: Any
    status_code: int


class IdempotencyService:
    """
    Stores the first response for a key and replays it for retries.

    Uses the idempotency_keys table with TTL expiration.
    """

    def __init__(self, database: Database):
        self.database = database
        self.logger = logger.bind(service="idempotency")

    async def check(self, key: str) -> Optional[CachedResponse]:
        """
        Look up an unexpired key.

        Args:
            key: Scoped idempotency key

        Returns:
            CachedResponse if the key exists and has not expired, None otherwise
        """
        now = datetime.now(timezone.utc)
        result = await self.database.query_with_retry(
            select(_table.c.response, _table.c.status_code, _table.c.created_at).where(
                _table.c.key == key,
                _table.c.expires_at > now,
            ),
            operation_name="idempotency_check",
        )
        row = result.first()
        if row is None:
            return None

        self.logger.info("idempotency_key_found", key=key, created_at=row["created_at"])
        return CachedResponse(body=row["response"], status_code=row["status_code"])

    async def store(
        self,
        key: str,
        body: Any,
        status_code: int,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> bool:
        """
        Store the response for a key.

        A concurrent request that already stored the key wins; this call then
        returns False. An expired row under the same key is replaced.

        Returns:
            True if stored, False if the key already exists
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds)

        await self.database.query_with_retry(
            delete(_table).where(_table.c.key == key, _table.c.expires_at <= now),
            operation_name="idempotency_replace_expired",
        )
        try:
            await self.database.query_with_retry(
                insert(_table).values(
                    key=key,
                    response=body,
                    status_code=status_code,
                    created_at=now,
                    expires_at=expires_at,
                ),
                operation_name="idempotency_store",
            )
        except IntegrityError:
            self.logger.info("idempotency_key_already_exists", key=key)
            return False

        self.logger.info(
            "idempotency_key_stored",
            key=key,
            ttl_seconds=ttl_seconds,
            expires_at=expires_at.isoformat(),
        )
        return True

    async def cleanup_expired(self) -> int:
        """
        Delete all expired idempotency keys.

        Called by the scheduled cleanup job and the admin cleanup endpoint.

        Returns:
            Number of keys deleted
        """
        result = await self.database.query_with_retry(
            delete(_table).where(_table.c.expires_at <= datetime.now(timezone.utc)),
            operation_name="idempotency_cleanup",
        )
        self.logger.info("idempotency_cleanup_complete", deleted_count=result.rowcount)
        return result.rowcount
