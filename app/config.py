"""
Application Configuration
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from typing import Optional
import structlog

logger = structlog.get_logger(__name__)


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing"""


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    database_url: Optional[str] = None
    create_schema_on_startup: bool = False

    # Database retry policy
    db_max_retries: int = 5
    db_initial_retry_delay: float = 1.0  # seconds
    db_max_retry_delay: float = 30.0  # seconds
    db_probe_max_retries: int = 3

    # Environment (NODE_ENV kept for compatibility with the existing deployment)
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "ENVIRONMENT", "environment"),
    )
    port: int = 3001
    log_level: str = "INFO"

    # Auth
    jwt_secret: Optional[str] = None
    jwt_expires_in: str = "7d"
    default_admin_username: str = "admin"
    default_admin_password: Optional[str] = None

    # CORS
    frontend_url: Optional[str] = None

    # Token stores (CSRF + rate limiting)
    token_store_backend: str = "memory"  # memory | redis
    redis_url: Optional[str] = None
    csrf_token_ttl_seconds: int = 24 * 60 * 60
    csrf_sweep_interval_seconds: int = 5 * 60

    # Request lifecycle
    request_timeout_seconds: float = 30.0
    shutdown_grace_seconds: int = 30

    # Sentry Error Tracking
    sentry_dsn: Optional[str] = None
    sentry_environment: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origin(self) -> str:
        return self.frontend_url or "http://localhost:3000"


def validate_runtime_settings(settings: Settings) -> None:
    """
    Check settings the process cannot serve without.

    Production refuses to start without JWT_SECRET or FRONTEND_URL.
    Development only warns about JWT_SECRET; authentication will fail.

    Raises:
        ConfigurationError: If a required setting is missing
    """
    if not settings.jwt_secret:
        if settings.is_production:
            raise ConfigurationError("JWT_SECRET must be set in production")
        logger.warning(
            "jwt_secret_missing",
            environment=settings.environment,
            hint="authentication will fail until JWT_SECRET is set",
        )

    if not settings.database_url:
        raise ConfigurationError("DATABASE_URL is required")

    if settings.is_production and not settings.frontend_url:
        raise ConfigurationError("FRONTEND_URL must be set in production")


settings = Settings()
