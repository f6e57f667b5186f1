"""
Database Retry Policy

Classifies database errors into a closed set of fault kinds and retries
transient connectivity faults with exponential backoff plus jitter.

Permanent data faults (constraint violations, missing tables/columns,
syntax errors) are raised on the first failure. Connectivity faults are
retried until the retry budget is spent.
"""

import asyncio
import errno
import random
import socket
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy import exc as sa_exc

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class FaultKind(str, Enum):
    """Fault categories at the data-access boundary."""

    CONSTRAINT = "constraint"
    UNDEFINED_OBJECT = "undefined_object"
    SYNTAX = "syntax"
    CONNECTION = "connection"
    OTHER = "other"


NON_RETRYABLE_FAULTS = frozenset({
    FaultKind.CONSTRAINT,
    FaultKind.UNDEFINED_OBJECT,
    FaultKind.SYNTAX,
})

# PostgreSQL SQLSTATE codes
SQLSTATE_FAULTS = {
    "23505": FaultKind.CONSTRAINT,        # unique_violation
    "23503": FaultKind.CONSTRAINT,        # foreign_key_violation
    "42P01": FaultKind.UNDEFINED_OBJECT,  # undefined_table
    "42703": FaultKind.UNDEFINED_OBJECT,  # undefined_column
    "42601": FaultKind.SYNTAX,            # syntax_error
}

CONNECTION_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ETIMEDOUT})


def _sqlstate(error: BaseException) -> Optional[str]:
    """Read a SQLSTATE from the error or the DBAPI error it wraps."""
    for candidate in (error, getattr(error, "orig", None)):
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            code = getattr(candidate, attr, None)
            if isinstance(code, str) and code:
                return code
    return None


def classify_fault(error: BaseException) -> FaultKind:
    """
    Map an exception raised by a database operation to a FaultKind.

    Args:
        error: Exception raised by the driver, SQLAlchemy or the network stack

    Returns:
        FaultKind for the retry decision
    """
    code = _sqlstate(error)
    if code in SQLSTATE_FAULTS:
        return SQLSTATE_FAULTS[code]

    if isinstance(error, sa_exc.IntegrityError):
        return FaultKind.CONSTRAINT

    # Pool checkout timeout (no connection within pool_timeout)
    if isinstance(error, sa_exc.TimeoutError):
        return FaultKind.CONNECTION

    root = getattr(error, "orig", None) or error
    if isinstance(root, (ConnectionRefusedError, TimeoutError, asyncio.TimeoutError, socket.gaierror)):
        return FaultKind.CONNECTION
    if isinstance(root, OSError) and root.errno in CONNECTION_ERRNOS:
        return FaultKind.CONNECTION
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return FaultKind.CONNECTION

    message = str(error).lower()
    if "connection" in message or "timeout" in message:
        return FaultKind.CONNECTION

    return FaultKind.OTHER


def is_retryable(error: BaseException) -> bool:
    """True if the error is a transient connectivity fault."""
    return classify_fault(error) is FaultKind.CONNECTION


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff with jitter.

    base_delay(attempt) = min(initial_delay * 2**attempt, max_delay)
    delay(attempt) = base_delay + uniform(0, jitter_ratio) * base_delay

    Delays are in seconds. ``max_retries`` counts retries, so an operation
    runs at most ``max_retries + 1`` times.
    """

    max_retries: int = 5
    initial_delay: float = 1.0
    max_delay: float = 30.0
    jitter_ratio: float = 0.3
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False, repr=False)
    random_source: Callable[[], float] = field(default=random.random, compare=False, repr=False)

    def with_max_retries(self, max_retries: int) -> "RetryPolicy":
        return replace(self, max_retries=max_retries)

    def base_delay(self, attempt: int) -> float:
        return min(self.initial_delay * (2 ** attempt), self.max_delay)

    def jitter(self, base: float) -> float:
        return self.random_source() * self.jitter_ratio * base

    def delay(self, attempt: int) -> float:
        base = self.base_delay(attempt)
        return base + self.jitter(base)

    async def run(self, operation: Callable[[], Awaitable[T]], operation_name: str = "query") -> T:
        """
        Run an async operation under this policy.

        Args:
            operation: Zero-argument coroutine function to invoke per attempt
            operation_name: Label used in log entries

        Returns:
            The operation's result

        Raises:
            The last error raised by the operation once it is classified as
            non-retryable or the retry budget is exhausted
        """
        total_attempts = self.max_retries + 1

        for attempt in range(total_attempts):
            try:
                return await operation()
            except Exception as e:
                kind = classify_fault(e)

                if kind in NON_RETRYABLE_FAULTS:
                    logger.error(
                        "database_error_non_retryable",
                        operation=operation_name,
                        fault=kind.value,
                        error=str(e),
                    )
                    raise

                if kind is not FaultKind.CONNECTION or attempt == self.max_retries:
                    logger.error(
                        "database_error",
                        operation=operation_name,
                        fault=kind.value,
                        attempts=attempt + 1,
                        error=str(e),
                    )
                    raise

                delay = self.delay(attempt)
                logger.warning(
                    "database_connection_retry",
                    operation=operation_name,
                    attempt=attempt + 1,
                    total_attempts=total_attempts,
                    delay_seconds=round(delay, 3),
                    error=str(e),
                )
                await self.sleep(delay)

        # total_attempts >= 1, so the loop always returns or raises
        raise RuntimeError(f"Database operation failed: {operation_name}")
