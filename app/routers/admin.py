"""
Admin Maintenance Router
"""

from fastapi import APIRouter, Depends
import structlog

from app.database import Database, get_database
from app.dependencies import get_csrf, get_idempotency, require_superadmin
from app.models.schemas import CleanupResponse
from app.services.auth import TokenClaims
from app.services.idempotency import IdempotencyService
from app.services.security.csrf import CsrfProtector
from app.services.user_tokens import purge_expired_tokens

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/cleanup-tokens", response_model=CleanupResponse)
async def cleanup_tokens(
    csrf: CsrfProtector = Depends(get_csrf),
    idempotency: IdempotencyService = Depends(get_idempotency),
    database: Database = Depends(get_database),
    claims: TokenClaims = Depends(require_superadmin),
):
    """
    Run the expired-token sweeps now instead of waiting for the scheduler.
    """
    csrf_removed = await csrf.sweep()
    keys_removed = await idempotency.cleanup_expired()
    account_tokens_removed = await purge_expired_tokens(database)
    logger.info(
        "manual_token_cleanup",
        admin=claims.username,
        csrf_tokens_removed=csrf_removed,
        idempotency_keys_removed=keys_removed,
        account_tokens_removed=account_tokens_removed,
    )
    return CleanupResponse(
        message="Expired tokens cleaned up",
        csrf_tokens_removed=csrf_removed,
        idempotency_keys_removed=keys_removed,
        account_tokens_removed=account_tokens_removed,
    )
