"""
Route Dependencies
Authentication guards and shared query parameters
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Query, Request

from app.config import Settings
from app.database import Database, get_database
from app.exceptions import AuthenticationError, PermissionDeniedError
from app.models.schemas import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.services.idempotency import IdempotencyService
from app.services.security.csrf import CsrfProtector
from app.services.auth import (
    ADMIN_COOKIE,
    ROLE_CUSTOMER,
    ROLE_SUPERADMIN,
    USER_COOKIE,
    TokenClaims,
    resolve_identity,
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_csrf(request: Request) -> CsrfProtector:
    return request.app.state.csrf


def get_idempotency(database: Database = Depends(get_database)) -> IdempotencyService:
    return IdempotencyService(database)


def _claims(request: Request, cookie_names) -> Optional[TokenClaims]:
    return resolve_identity(
        request.cookies,
        request.headers.get("authorization"),
        get_settings(request).jwt_secret,
        cookie_names=cookie_names,
    )


def get_optional_identity(request: Request) -> Optional[TokenClaims]:
    """Claims of the caller if any valid token is present, else None."""
    return _claims(request, (ADMIN_COOKIE, USER_COOKIE))


async def require_admin(request: Request) -> TokenClaims:
    """
    Admin or superadmin.

    Raises:
        AuthenticationError: 401 when no valid token is presented
        PermissionDeniedError: 403 when the token belongs to a customer
    """
    claims = _claims(request, (ADMIN_COOKIE, USER_COOKIE))
    if claims is None:
        raise AuthenticationError("Authentication required")
    if not claims.is_admin:
        raise PermissionDeniedError("Admin access required")
    return claims


async def require_superadmin(claims: TokenClaims = Depends(require_admin)) -> TokenClaims:
    if claims.role != ROLE_SUPERADMIN:
        raise PermissionDeniedError("Superadmin access required")
    return claims


async def require_customer(request: Request) -> TokenClaims:
    claims = _claims(request, (USER_COOKIE, ADMIN_COOKIE))
    if claims is None:
        raise AuthenticationError("Authentication required")
    if claims.role != ROLE_CUSTOMER:
        raise PermissionDeniedError("Customer access required")
    return claims


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def pagination_params(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: int = Query(DEFAULT_PAGE_SIZE, description="Items per page (1-100)"),
) -> PageParams:
    """Out-of-range values are clamped rather than rejected."""
    return PageParams(page=max(1, page), limit=min(MAX_PAGE_SIZE, max(1, limit)))
