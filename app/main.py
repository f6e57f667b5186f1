"""
Connector Storefront API - Main Application
FastAPI Entry Point with APScheduler for token cleanup
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Sequence

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from app.config import Settings, settings as default_settings, validate_runtime_settings
from app.database import Database
from app.error_handlers import register_error_handlers
from app.middleware import (
    REQUEST_ID_HEADER,
    CorrelationIdMiddleware,
    RequestGuardMiddleware,
    RequestLoggingMiddleware,
    RequestTimeoutMiddleware,
    SecurityHeadersMiddleware,
)
from app.middleware.request_guard import request_session_key
from app.routers import ALL_ROUTERS
from app.scheduler import start_scheduler, stop_scheduler
from app.services.auth import ensure_default_admin
from app.services.idempotency import IDEMPOTENCY_HEADER, IdempotencyService
from app.services.monitoring import init_sentry, setup_logging
from app.services.security import (
    CSRF_HEADER,
    DEFAULT_RULES,
    CsrfProtector,
    RateLimiter,
    RateLimitRule,
    TokenStore,
    create_token_store,
)

logger = structlog.get_logger(__name__)

APP_VERSION = "0.4.0"

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", CSRF_HEADER, IDEMPOTENCY_HEADER, REQUEST_ID_HEADER]
CORS_EXPOSE_HEADERS = [
    CSRF_HEADER,
    REQUEST_ID_HEADER,
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
    "Retry-After",
]


async def warm_up(database: Database, settings: Settings) -> None:
    """
    Connection probe followed by the default admin bootstrap.

    Runs in the background so the listener accepts requests immediately;
    a failed probe leaves the service in degraded mode.
    """
    if not await database.probe():
        logger.warning("startup_degraded", reason="database_unreachable")
        return
    try:
        await ensure_default_admin(database, settings)
    except Exception as e:
        logger.error("default_admin_init_failed", error=str(e), exc_info=True)


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    csrf_store: Optional[TokenStore] = None,
    rate_limit_store: Optional[TokenStore] = None,
    rate_limit_rules: Optional[Sequence[RateLimitRule]] = None,
) -> FastAPI:
    """
    Build the application.

    Collaborators default to the ones described by settings; tests inject
    an in-memory database and token stores.
    """
    settings = settings or default_settings

    csrf = CsrfProtector(
        csrf_store or create_token_store(settings, "csrf"),
        ttl_seconds=settings.csrf_token_ttl_seconds,
    )
    limiter = RateLimiter(
        rate_limit_store or create_token_store(settings, "rate_limit"),
        rules=rate_limit_rules or DEFAULT_RULES,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application Startup / Shutdown"""
        validate_runtime_settings(settings)
        setup_logging(settings.log_level)
        init_sentry(settings)
        logger.info("startup", environment=settings.environment, port=settings.port)

        db = database or Database.from_settings(settings)
        app.state.database = db

        if settings.create_schema_on_startup:
            await db.create_schema()

        warm_up_task = None
        if settings.environment == "testing":
            await warm_up(db, settings)
        else:
            warm_up_task = asyncio.create_task(warm_up(db, settings))

        scheduler = start_scheduler(
            csrf,
            IdempotencyService(db),
            db,
            environment=settings.environment,
            sweep_interval_seconds=settings.csrf_sweep_interval_seconds,
        )

        yield

        logger.info("shutdown")
        stop_scheduler(scheduler)

        if warm_up_task is not None and not warm_up_task.done():
            warm_up_task.cancel()

        try:
            await asyncio.wait_for(db.dispose(), timeout=settings.shutdown_grace_seconds)
        except asyncio.TimeoutError:
            logger.error("database_dispose_timeout", timeout_seconds=settings.shutdown_grace_seconds)

        await csrf.store.close()
        await limiter.store.close()

    app = FastAPI(
        title="Connector Storefront API",
        description="Catalog, RFQ orders, inquiries and CMS content for the connector storefront",
        version=APP_VERSION,
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.csrf = csrf
    app.state.limiter = limiter

    register_error_handlers(app)

    for router in ALL_ROUTERS:
        app.include_router(router)

    @app.get("/health")
    async def health_check(request: Request):
        """
        Health Check Endpoint
        200 when the database answers, 503 otherwise
        """
        db: Database = request.app.state.database
        connected = await db.ping()
        return JSONResponse(
            content={
                "status": "healthy" if connected else "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "environment": settings.environment,
                "database": "connected" if connected else "disconnected",
            },
            status_code=200 if connected else 503,
        )

    @app.get("/ready")
    async def readiness_check(request: Request):
        db: Database = request.app.state.database
        if not db.is_connected:
            return JSONResponse(
                content={"ready": False, "reason": "Database not connected"},
                status_code=503,
            )
        return {"ready": True}

    @app.get("/api/csrf-token")
    async def csrf_token(request: Request):
        """The caller's CSRF token; the same value is sent in the X-CSRF-Token header."""
        token = await csrf.issue(request_session_key(request, settings.jwt_secret))
        return {"csrfToken": token}

    # Registered innermost first: the last one added wraps all the others
    app.add_middleware(
        RequestGuardMiddleware,
        csrf=csrf,
        limiter=limiter,
        jwt_secret=settings.jwt_secret,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        expose_headers=CORS_EXPOSE_HEADERS,
    )
    app.add_middleware(SecurityHeadersMiddleware, production=settings.is_production)
    app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware, header_name=REQUEST_ID_HEADER)

    return app


app = create_app()


def run():
    """Serve the app with uvicorn; in-flight requests get the grace period on SIGTERM."""
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=default_settings.port,
        timeout_graceful_shutdown=default_settings.shutdown_grace_seconds,
        reload=default_settings.environment == "development",
    )


if __name__ == "__main__":
    run()
