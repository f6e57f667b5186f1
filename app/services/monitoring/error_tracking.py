"""
Sentry Error Tracking
Reports unexpected API errors with request context
"""

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from app.config import Settings

logger = logging.getLogger(__name__)


def init_sentry(settings: Settings) -> bool:
    """
    Initialize Sentry SDK with FastAPI integration.

    If SENTRY_DSN is not configured, logs warning and returns (disabled).
    This allows graceful degradation in development environments.

    Returns:
        True if Sentry was initialized
    """
    if not settings.sentry_dsn:
        logger.warning("Sentry DSN not configured - error tracking disabled")
        return False

    try:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.sentry_environment or settings.environment,
            traces_sample_rate=0.1,  # 10% of requests traced
            integrations=[
                FastApiIntegration(),
            ],
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False

    logger.info(
        "Sentry initialized",
        extra={
            "environment": settings.sentry_environment or settings.environment,
            "traces_sample_rate": 0.1,
        }
    )
    return True


def report_api_error(
    error: BaseException,
    method: str,
    path: str,
    status_code: int,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Capture an unexpected API error in Sentry.

    No-op when Sentry was not initialized.

    Args:
        error: The exception that escaped the route handler
        method: HTTP method of the failing request
        path: Request path
        status_code: Status returned to the client
        correlation_id: Request ID for cross-referencing logs
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_context("request", {
            "method": method,
            "path": path,
            "status_code": status_code,
        })
        scope.set_tag("api_path", path)
        if correlation_id:
            scope.set_tag("correlation_id", correlation_id)
        sentry_sdk.capture_exception(error)

