"""
Application Exceptions

Operational errors raised by route handlers and services. Each carries the
HTTP status it maps to; the error handlers turn them into the JSON envelope
{"error": str, "details"?: ...}.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for expected (operational) errors."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class VersionConflictError(ConflictError):
    """Raised when an optimistic-concurrency version check fails."""

    def __init__(self, resource: str, expected_version: int):
        super().__init__(
            f"{resource} was modified by another user. Please refresh and try again.",
            details={"expectedVersion": expected_version},
        )
        self.resource = resource
        self.expected_version = expected_version


class AuthenticationError(AppError):
    status_code = 401


class PermissionDeniedError(AppError):
    status_code = 403


class ServiceUnavailableError(AppError):
    status_code = 503
