"""
Account Token Service

Issues and redeems the single-use tokens behind password reset and email
verification. Tokens are 32 random bytes, hex encoded; only their SHA-256
is stored. Delivering the token to the user (the reset or verification
email) is outside this service.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import delete, insert, update

from app.database import Database
from app.models import UserToken

logger = structlog.get_logger(__name__)

PURPOSE_PASSWORD_RESET = "password_reset"
PURPOSE_EMAIL_VERIFICATION = "email_verification"

TOKEN_LIFETIMES = {
    PURPOSE_PASSWORD_RESET: timedelta(hours=1),
    PURPOSE_EMAIL_VERIFICATION: timedelta(days=7),
}

user_tokens = UserToken.__table__


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def issue_token(
    database: Database,
    user_id: int,
    purpose: str,
    now: Optional[datetime] = None,
) -> str:
    """
    Create a token for the user, retiring any unused one of the same purpose.

    Returns:
        The raw token. It is not recoverable afterwards.
    """
    now = now or _now()
    token = generate_token()

    async with database.connect_with_retry(f"issue_{purpose}_token") as conn:
        async with conn.begin():
            await conn.execute(
                update(user_tokens)
                .where(
                    user_tokens.c.user_id == user_id,
                    user_tokens.c.purpose == purpose,
                    user_tokens.c.used_at.is_(None),
                )
                .values(used_at=now)
            )
            await conn.execute(
                insert(user_tokens).values(
                    user_id=user_id,
                    purpose=purpose,
                    token_hash=hash_token(token),
                    created_at=now,
                    expires_at=now + TOKEN_LIFETIMES[purpose],
                )
            )

    logger.info("account_token_issued", user_id=user_id, purpose=purpose)
    return token


async def consume_token(
    database: Database,
    token: str,
    purpose: str,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """
    Spend a token.

    The check and the spend are one UPDATE, so two concurrent requests with
    the same token cannot both succeed.

    Returns:
        The token row (with user_id), or None if the token is unknown,
        expired, already used or issued for another purpose
    """
    now = now or _now()
    result = await database.query_with_retry(
        update(user_tokens)
        .where(
            user_tokens.c.token_hash == hash_token(token),
            user_tokens.c.purpose == purpose,
            user_tokens.c.used_at.is_(None),
            user_tokens.c.expires_at > now,
        )
        .values(used_at=now)
        .returning(user_tokens.c.id, user_tokens.c.user_id, user_tokens.c.purpose),
        operation_name=f"consume_{purpose}_token",
    )
    row = result.first()
    if row is None:
        logger.warning("account_token_rejected", purpose=purpose)
    return row


async def purge_expired_tokens(database: Database, now: Optional[datetime] = None) -> int:
    """Delete tokens past their expiry. Returns the number removed."""
    result = await database.query_with_retry(
        delete(user_tokens).where(user_tokens.c.expires_at < (now or _now())),
        operation_name="purge_user_tokens",
    )
    if result.rowcount:
        logger.info("account_tokens_purged", count=result.rowcount)
    return result.rowcount
