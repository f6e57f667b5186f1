"""
Admin Auth Router

Login issues an httpOnly admin_token cookie (8 hours); logout clears it and
drops the caller's CSRF token.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
import structlog

from app.config import Settings
from app.database import Database, get_database
from app.dependencies import get_csrf, get_settings, require_admin
from app.exceptions import AuthenticationError
from app.models import Admin
from app.models.schemas import AdminLogin, AdminLoginResponse, MessageResponse, VerifyResponse
from app.services.auth import (
    ADMIN_COOKIE,
    ADMIN_SESSION,
    TokenClaims,
    create_token,
    verify_password_async,
)
from app.services.security.csrf import CsrfProtector
from app.services.security.session import derive_session_key

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin/auth", tags=["admin-auth"])


def set_session_cookie(response: Response, name: str, token: str, max_age: int, settings: Settings) -> None:
    response.set_cookie(
        key=name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, name: str, settings: Settings) -> None:
    response.delete_cookie(
        key=name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


@router.post("/login", response_model=AdminLoginResponse)
async def login(
    credentials: AdminLogin,
    response: Response,
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
):
    result = await database.query_with_retry(
        select(Admin.__table__).where(Admin.__table__.c.username == credentials.username),
        operation_name="find_admin",
    )
    admin = result.first()

    if admin is None or not await verify_password_async(credentials.password, admin["password"]):
        logger.warning("admin_login_failed", username=credentials.username)
        raise AuthenticationError("Invalid credentials")

    token = create_token(admin["username"], admin["role"], settings.jwt_secret, ADMIN_SESSION)
    set_session_cookie(response, ADMIN_COOKIE, token, int(ADMIN_SESSION.total_seconds()), settings)

    logger.info("admin_login", username=admin["username"], role=admin["role"])
    return AdminLoginResponse(
        message="Login successful",
        admin={"username": admin["username"], "role": admin["role"]},
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
    csrf: CsrfProtector = Depends(get_csrf),
    claims: TokenClaims = Depends(require_admin),
):
    await csrf.invalidate(derive_session_key(claims.username, None, None, None))
    clear_session_cookie(response, ADMIN_COOKIE, settings)
    logger.info("admin_logout", username=claims.username)
    return MessageResponse(message="Logged out successfully")


@router.get("/verify", response_model=VerifyResponse)
async def verify(claims: TokenClaims = Depends(require_admin)):
    return VerifyResponse(valid=True, username=claims.username, role=claims.role)
