"""
Database Services
Retry policy and fault classification for the connection pool wrapper
"""

from app.services.database.retry import (
    FaultKind,
    NON_RETRYABLE_FAULTS,
    RetryPolicy,
    classify_fault,
    is_retryable,
)

__all__ = [
    "FaultKind",
    "NON_RETRYABLE_FAULTS",
    "RetryPolicy",
    "classify_fault",
    "is_retryable",
]
