"""
Customer Accounts Router

Registration, login and account recovery for RFQ customers. The session is
an httpOnly user_token cookie valid for JWT_EXPIRES_IN (7 days by default).

Password reset and email verification hand out single-use tokens (see
app.services.user_tokens). Requests for them always get the same answer so
the endpoints cannot be used to probe which emails are registered.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select
import structlog

from app.config import Settings
from app.database import Database, get_database
from app.dependencies import get_csrf, get_settings, require_customer
from app.exceptions import AppError, AuthenticationError, NotFoundError
from app.models import User
from app.models.schemas import (
    MessageResponse,
    PasswordReset,
    PasswordResetRequest,
    UserAuthResponse,
    UserLogin,
    UserOut,
    UserRegister,
    VerificationResend,
    VerifyEmailResponse,
)
from app.routers.auth import clear_session_cookie, set_session_cookie
from app.services.auth import (
    ROLE_CUSTOMER,
    USER_COOKIE,
    TokenClaims,
    create_token,
    hash_password_async,
    parse_duration,
    verify_password_async,
)
from app.services.records import insert_returning, update_returning
from app.services.security.csrf import CsrfProtector
from app.services.security.session import derive_session_key
from app.services.user_tokens import (
    PURPOSE_EMAIL_VERIFICATION,
    PURPOSE_PASSWORD_RESET,
    consume_token,
    issue_token,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

users = User.__table__


def _start_session(response: Response, user: dict, settings: Settings) -> None:
    lifetime = parse_duration(settings.jwt_expires_in)
    token = create_token(user["email"], ROLE_CUSTOMER, settings.jwt_secret, lifetime)
    set_session_cookie(response, USER_COOKIE, token, int(lifetime.total_seconds()), settings)


async def _find_by_email(database: Database, email: str):
    result = await database.query_with_retry(
        select(users).where(users.c.email == email),
        operation_name="find_user",
    )
    return result.first()


@router.post("/register", response_model=UserAuthResponse, status_code=201)
async def register(
    data: UserRegister,
    response: Response,
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
):
    if await _find_by_email(database, data.email) is not None:
        raise AppError("Email already registered", status_code=400)

    user = await insert_returning(database, users, {
        "name": data.name,
        "email": data.email,
        "password": await hash_password_async(data.password),
        "company": data.company,
        "phone": data.phone,
        "role": ROLE_CUSTOMER,
        "is_active": True,
        "email_verified": False,
    })
    await issue_token(database, user["id"], PURPOSE_EMAIL_VERIFICATION)

    _start_session(response, user, settings)
    logger.info("user_registered", user_id=user["id"])
    return UserAuthResponse(message="Registration successful", user=UserOut.model_validate(user))


@router.post("/login", response_model=UserAuthResponse)
async def login(
    credentials: UserLogin,
    response: Response,
    database: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
):
    user = await _find_by_email(database, credentials.email)
    if (
        user is None
        or not user["is_active"]
        or not await verify_password_async(credentials.password, user["password"])
    ):
        logger.warning("user_login_failed")
        raise AuthenticationError("Invalid email or password")

    _start_session(response, user, settings)
    logger.info("user_login", user_id=user["id"])
    return UserAuthResponse(message="Login successful", user=UserOut.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
    csrf: CsrfProtector = Depends(get_csrf),
    claims: TokenClaims = Depends(require_customer),
):
    await csrf.invalidate(derive_session_key(claims.username, None, None, None))
    clear_session_cookie(response, USER_COOKIE, settings)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserOut)
async def me(
    claims: TokenClaims = Depends(require_customer),
    database: Database = Depends(get_database),
):
    user = await _find_by_email(database, claims.username)
    if user is None:
        raise NotFoundError("User not found")
    return UserOut.model_validate(user)


# ============================================================================
# Password reset
# ============================================================================

RESET_REQUESTED = "If an account exists with this email, a password reset link has been sent."
VERIFICATION_REQUESTED = "If an account exists with this email, a verification link has been sent."


@router.post("/password/reset-request", response_model=MessageResponse)
async def request_password_reset(
    data: PasswordResetRequest,
    database: Database = Depends(get_database),
):
    """
    Issue a one-hour reset token for an active account.

    The token is handed to the mail sender, never to the caller; the answer
    is the same whether or not the account exists.
    """
    user = await _find_by_email(database, data.email)
    if user is not None and user["is_active"]:
        await issue_token(database, user["id"], PURPOSE_PASSWORD_RESET)
    return MessageResponse(message=RESET_REQUESTED)


@router.post("/password/reset", response_model=MessageResponse)
async def reset_password(
    data: PasswordReset,
    database: Database = Depends(get_database),
):
    token = await consume_token(database, data.token, PURPOSE_PASSWORD_RESET)
    if token is None:
        raise AppError("Invalid or expired reset token", status_code=400)

    await update_returning(
        database,
        users,
        token["user_id"],
        {"password": await hash_password_async(data.password)},
        "User",
    )
    logger.info("user_password_reset", user_id=token["user_id"])
    return MessageResponse(message="Password has been reset successfully")


# ============================================================================
# Email verification
# ============================================================================

@router.get("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    token: Optional[str] = Query(None),
    database: Database = Depends(get_database),
):
    if not token:
        raise AppError("Verification token is required", status_code=400)

    spent = await consume_token(database, token, PURPOSE_EMAIL_VERIFICATION)
    if spent is None:
        raise AppError("Invalid or expired verification token", status_code=400)

    await update_returning(database, users, spent["user_id"], {"email_verified": True}, "User")
    logger.info("user_email_verified", user_id=spent["user_id"])
    return VerifyEmailResponse(message="Email verified successfully", verified=True)


@router.post("/verify-email/resend", response_model=MessageResponse)
async def resend_verification(
    data: VerificationResend,
    database: Database = Depends(get_database),
):
    """Issue a fresh seven-day verification token for an unverified account."""
    user = await _find_by_email(database, data.email)
    if user is not None and user["is_active"] and not user["email_verified"]:
        await issue_token(database, user["id"], PURPOSE_EMAIL_VERIFICATION)
    return MessageResponse(message=VERIFICATION_REQUESTED)
