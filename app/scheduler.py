"""
APScheduler Background Jobs

Periodic cleanup of expired CSRF tokens, idempotency keys and account
(password reset, email verification) tokens. Jobs run on an
AsyncIOScheduler inside the API process.
"""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.database import Database
from app.services.idempotency import IdempotencyService
from app.services.security.csrf import CsrfProtector
from app.services.user_tokens import purge_expired_tokens

logger = structlog.get_logger(__name__)


async def run_csrf_sweep(csrf: CsrfProtector):
    """
    Remove expired CSRF tokens.

    Called by APScheduler every CSRF_SWEEP_INTERVAL_SECONDS (5 minutes).
    """
    try:
        await csrf.sweep()
    except Exception as e:
        logger.error("csrf_sweep_crashed", error=str(e), exc_info=True)


async def run_idempotency_cleanup(idempotency: IdempotencyService):
    """
    Delete expired idempotency keys.

    Called by APScheduler hourly.
    """
    try:
        await idempotency.cleanup_expired()
    except Exception as e:
        logger.error("idempotency_cleanup_crashed", error=str(e), exc_info=True)


async def run_account_token_cleanup(database: Database):
    """Delete expired password reset and email verification tokens. Hourly."""
    try:
        await purge_expired_tokens(database)
    except Exception as e:
        logger.error("account_token_cleanup_crashed", error=str(e), exc_info=True)


def start_scheduler(
    csrf: CsrfProtector,
    idempotency: IdempotencyService,
    database: Database,
    environment: str = "production",
    sweep_interval_seconds: int = 300,
) -> AsyncIOScheduler:
    """
    Start background scheduler with all jobs.

    Must be called from inside the running event loop (lifespan startup).

    Args:
        csrf: CSRF protector whose store is swept
        idempotency: Idempotency service whose expired keys are deleted
        database: Database holding the account tokens
        environment: Current environment (skip scheduler in testing)
        sweep_interval_seconds: CSRF sweep interval

    Returns:
        AsyncIOScheduler instance
    """
    scheduler = AsyncIOScheduler(timezone="UTC")

    if environment == "testing":
        logger.info("scheduler_skipped", reason="testing_environment")
        return scheduler

    # Job 1: CSRF token sweep
    scheduler.add_job(
        run_csrf_sweep,
        trigger=IntervalTrigger(seconds=sweep_interval_seconds),
        args=[csrf],
        id="csrf_token_sweep",
        name="Expired CSRF Token Sweep",
        replace_existing=True
    )
    logger.info("job_registered", job="csrf_token_sweep", interval_seconds=sweep_interval_seconds)

    # Job 2: Hourly idempotency key cleanup
    scheduler.add_job(
        run_idempotency_cleanup,
        trigger=IntervalTrigger(hours=1),
        args=[idempotency],
        id="idempotency_cleanup",
        name="Expired Idempotency Key Cleanup",
        replace_existing=True
    )
    logger.info("job_registered", job="idempotency_cleanup", schedule="hourly")

    # Job 3: Hourly account token cleanup
    scheduler.add_job(
        run_account_token_cleanup,
        trigger=IntervalTrigger(hours=1),
        args=[database],
        id="account_token_cleanup",
        name="Expired Account Token Cleanup",
        replace_existing=True
    )
    logger.info("job_registered", job="account_token_cleanup", schedule="hourly")

    scheduler.start()
    logger.info("scheduler_started", jobs=[job.id for job in scheduler.get_jobs()])

    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler):
    """
    Stop background scheduler gracefully.

    Args:
        scheduler: AsyncIOScheduler instance to stop
    """
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


__all__ = [
    "start_scheduler",
    "stop_scheduler",
    "run_csrf_sweep",
    "run_idempotency_cleanup",
    "run_account_token_cleanup",
]
