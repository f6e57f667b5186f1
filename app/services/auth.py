"""
Authentication Service

JWT issuing/verification (PyJWT), bcrypt password hashing, and the one-time
default admin bootstrap.
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

import bcrypt
import jwt
import structlog
from sqlalchemy import func, insert, select

from app.config import Settings
from app.models.admin import Admin

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"

ROLE_ADMIN = "admin"
ROLE_SUPERADMIN = "superadmin"
ROLE_CUSTOMER = "customer"
ADMIN_ROLES = frozenset({ROLE_ADMIN, ROLE_SUPERADMIN})

ADMIN_COOKIE = "admin_token"
USER_COOKIE = "user_token"
ADMIN_SESSION = timedelta(hours=8)
CUSTOMER_SESSION = timedelta(days=7)

MIN_PASSWORD_LENGTH = 8
# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72

_DURATION = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


@dataclass(frozen=True)
class TokenClaims:
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def parse_duration(value: str) -> timedelta:
    """Parse "7d", "8h", "30m", "45s" or a plain number of seconds."""
    match = _DURATION.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_UNITS[unit]: int(amount)})


def check_password_length(password: str) -> str:
    """
    Reject passwords bcrypt cannot hash.

    Raises:
        ValueError: If the password is shorter than 8 characters or longer than 72 UTF-8 bytes
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


async def hash_password_async(password: str) -> str:
    # bcrypt is CPU bound; keep it off the event loop
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)


def create_token(
    username: str,
    role: str,
    secret: Optional[str],
    expires_in: timedelta,
) -> str:
    """
    Sign a session token.

    Raises:
        RuntimeError: If JWT_SECRET is not configured
    """
    if not secret:
        raise RuntimeError("JWT_SECRET is not configured")
    now = datetime.now(timezone.utc)
    payload = {"username": username, "role": role, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(token: Optional[str], secret: Optional[str]) -> Optional[TokenClaims]:
    """Verify a token. Returns None for missing, expired, forged or malformed tokens."""
    if not token or not secret:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug("jwt_decode_failed", error=str(e))
        return None

    username = payload.get("username")
    role = payload.get("role")
    if not isinstance(username, str) or not isinstance(role, str):
        return None
    return TokenClaims(username=username, role=role)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


def resolve_identity(
    cookies: Mapping[str, str],
    authorization: Optional[str],
    secret: Optional[str],
    cookie_names=(ADMIN_COOKIE, USER_COOKIE),
) -> Optional[TokenClaims]:
    """
    Find valid claims in the given cookies (in order) or a Bearer header.

    Used both for enforcement (auth dependencies) and for keying CSRF tokens
    and rate-limit counters, where an invalid token simply means anonymous.
    """
    for name in cookie_names:
        claims = decode_token(cookies.get(name), secret)
        if claims is not None:
            return claims
    return decode_token(bearer_token(authorization), secret)


async def ensure_default_admin(database, settings: Settings) -> bool:
    """
    Create the bootstrap superadmin if no admin exists.

    Returns:
        True if an admin was created
    """
    result = await database.query_with_retry(
        select(func.count().label("total")).select_from(Admin.__table__),
        operation_name="count_admins",
    )
    existing = result.rows[0]["total"] if result.rows else 0
    if existing:
        return False

    password = settings.default_admin_password
    if not password:
        if settings.is_production:
            logger.warning("default_admin_skipped", reason="DEFAULT_ADMIN_PASSWORD not set")
            return False
        password = "admin123"

    await database.query_with_retry(
        insert(Admin.__table__).values(
            username=settings.default_admin_username,
            password=await hash_password_async(password),
            role=ROLE_SUPERADMIN,
        ),
        operation_name="create_default_admin",
    )
    logger.warning(
        "default_admin_created",
        username=settings.default_admin_username,
        hint="change the default password after first login",
    )
    return True
