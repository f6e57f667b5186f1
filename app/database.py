"""
Database Configuration and Connection Pool Wrapper

One Database instance is created per process by the application factory and
handed to route handlers through the get_database dependency. Every query
helper runs under the RetryPolicy so transient connectivity faults are
retried and data faults surface immediately.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import urlsplit

import structlog
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import Executable

from app.config import Settings
from app.exceptions import ServiceUnavailableError
from app.services.database.retry import RetryPolicy

logger = structlog.get_logger(__name__)

# Pool bounds
POOL_MIN_SIZE = 2
POOL_MAX_SIZE = 20
# Max connection age. SQLAlchemy pools have no idle timeout; pre-ping covers
# connections the server closed while they sat in the pool.
POOL_RECYCLE_SECONDS = 30
POOL_CHECKOUT_TIMEOUT_SECONDS = 2

LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1", ""}

Statement = Union[str, Executable]
Params = Optional[Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]]

# Base class for all models
Base = declarative_base()


@dataclass
class QueryResult:
    """Buffered result of a statement: rows as dicts plus affected row count."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None


def async_database_url(database_url: str) -> str:
    """Rewrite postgres:// style URLs to the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if database_url.startswith(prefix):
            return "postgresql+asyncpg://" + database_url[len(prefix):]
    return database_url


def _insecure_ssl_context() -> ssl.SSLContext:
    # Certificate validation is disabled for managed hosts until a CA bundle is provisioned
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def create_database_engine(settings: Settings) -> AsyncEngine:
    """
    Build the bounded async engine for DATABASE_URL.

    Pool: 2 persistent connections, up to 20 in total, checkout fails after
    2s when the pool is exhausted. Connections are replaced once they are 30s
    old (pool_recycle counts age since connect, not idle time).
    """
    url = async_database_url(settings.database_url)
    connect_args: Dict[str, Any] = {}

    host = urlsplit(url).hostname or ""
    if settings.is_production and host not in LOCAL_HOSTS:
        connect_args["ssl"] = _insecure_ssl_context()

    engine = create_async_engine(
        url,
        pool_size=POOL_MIN_SIZE,
        max_overflow=POOL_MAX_SIZE - POOL_MIN_SIZE,
        pool_recycle=POOL_RECYCLE_SECONDS,
        pool_timeout=POOL_CHECKOUT_TIMEOUT_SECONDS,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    logger.info(
        "database_engine_created",
        host=host,
        pool_min=POOL_MIN_SIZE,
        pool_max=POOL_MAX_SIZE,
        tls=bool(connect_args),
    )
    return engine


def retry_policy_from_settings(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.db_max_retries,
        initial_delay=settings.db_initial_retry_delay,
        max_delay=settings.db_max_retry_delay,
    )


def _as_statement(statement: Statement) -> Executable:
    return text(statement) if isinstance(statement, str) else statement


class Database:
    """
    Connection pool wrapper.

    Usage:
        database = Database(create_database_engine(settings))
        result = await database.query_with_retry(select(products), operation_name="list_products")

        async with database.connect_with_retry("create_order") as conn:
            async with conn.begin():
                await conn.execute(...)
    """

    def __init__(
        self,
        engine: AsyncEngine,
        retry_policy: Optional[RetryPolicy] = None,
        probe_max_retries: int = 3,
    ):
        self.engine = engine
        self.retry_policy = retry_policy or RetryPolicy()
        self.probe_max_retries = probe_max_retries
        self.is_connected = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            create_database_engine(settings),
            retry_policy=retry_policy_from_settings(settings),
            probe_max_retries=settings.db_probe_max_retries,
        )

    async def execute(self, statement: Statement, params: Params = None) -> QueryResult:
        """
        Run one statement in its own transaction, without retry.

        Args:
            statement: SQL text or a SQLAlchemy Core statement
            params: Bound parameters (a mapping, or a list of mappings for executemany)

        Returns:
            QueryResult with buffered rows
        """
        async with self.engine.begin() as conn:
            return await run_statement(conn, statement, params)

    async def query_with_retry(
        self,
        statement: Statement,
        params: Params = None,
        operation_name: str = "query",
    ) -> QueryResult:
        """Run a statement under the retry policy."""
        return await self.retry_policy.run(
            lambda: self.execute(statement, params),
            operation_name,
        )

    async def _checkout(self) -> AsyncConnection:
        conn = self.engine.connect()
        await conn.start()
        return conn

    @asynccontextmanager
    async def connect_with_retry(self, operation_name: str = "get connection") -> AsyncIterator[AsyncConnection]:
        """
        Check out one connection under the retry policy.

        Only the checkout is retried; statements issued on the yielded
        connection are the caller's responsibility (usually inside
        ``async with conn.begin()``).
        """
        conn = await self.retry_policy.run(self._checkout, operation_name)
        try:
            yield conn
        finally:
            await conn.close()

    async def probe(self) -> bool:
        """
        Startup connectivity test with a lower retry ceiling.

        Never raises: a failure leaves the service running in degraded mode
        where each request fails on its own.
        """
        policy = self.retry_policy.with_max_retries(self.probe_max_retries)

        async def select_one() -> None:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

        try:
            await policy.run(select_one, "connection test")
        except Exception as e:
            self.is_connected = False
            logger.error("database_probe_failed", error=str(e))
            return False

        self.is_connected = True
        logger.info("database_connection_established")
        return True

    async def ping(self, timeout: float = 2.0) -> bool:
        """Single health check query, no retry."""
        try:
            await asyncio.wait_for(self.execute("SELECT 1"), timeout=timeout)
        except Exception as e:
            logger.warning("database_ping_failed", error=str(e))
            self.is_connected = False
            return False
        self.is_connected = True
        return True

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        # Models must be imported so their tables are registered on Base.metadata
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_schema_ensured", tables=len(Base.metadata.tables))

    async def dispose(self) -> None:
        await self.engine.dispose()
        self.is_connected = False
        logger.info("database_disconnected")


async def run_statement(conn: AsyncConnection, statement: Statement, params: Params = None) -> QueryResult:
    """Execute on an already checked-out connection and buffer the rows."""
    if params is None:
        result = await conn.execute(_as_statement(statement))
    else:
        result = await conn.execute(_as_statement(statement), params)

    if result.returns_rows:
        rows = [dict(row) for row in result.mappings().all()]
        return QueryResult(rows=rows, rowcount=len(rows))
    return QueryResult(rows=[], rowcount=result.rowcount)


def get_database(request: Request) -> Database:
    """
    Dependency for getting the process-wide Database.
    Usage: database: Database = Depends(get_database)
    """
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise ServiceUnavailableError("Database not configured")
    return database
