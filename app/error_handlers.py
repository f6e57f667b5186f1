"""
Exception Handlers

Every error leaves the API in one envelope: {"error": str, "details"?: ...}.
"""

import traceback
from typing import Any, Dict, List

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.exceptions import AppError
from app.middleware.correlation_id import get_correlation_id
from app.services.database.retry import FaultKind, classify_fault
from app.services.monitoring.error_tracking import report_api_error

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An internal server error occurred. Please try again later."

DATABASE_FAULT_RESPONSES = {
    FaultKind.CONSTRAINT: (409, "A record with these values already exists or is still referenced."),
    FaultKind.UNDEFINED_OBJECT: (400, "The request referenced data that does not exist."),
    FaultKind.SYNTAX: (400, "The request could not be processed."),
    FaultKind.CONNECTION: (503, "Database temporarily unavailable. Please try again."),
}


def error_body(message: str, details: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body


def validation_details(exc: RequestValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic errors to [{field, message}], dropping the body/query prefix."""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
            loc = loc[1:]
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": ".".join(loc), "message": message})
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("app_error", path=request.url.path, status=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = validation_details(exc)
    logger.info("validation_failed", path=request.url.path, fields=[d["field"] for d in details])
    return JSONResponse(status_code=400, content=error_body("Validation failed", details))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route {request.url.path} not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    SQLAlchemy errors and raw socket errors from the driver. Connectivity
    faults become 503; anything unclassified falls through to the 500 handler.
    """
    kind = classify_fault(exc)
    if kind in DATABASE_FAULT_RESPONSES:
        status_code, message = DATABASE_FAULT_RESPONSES[kind]
        logger.warning(
            "database_error_response",
            path=request.url.path,
            fault=kind.value,
            status=status_code,
            error=str(getattr(exc, "orig", None) or exc),
        )
        return JSONResponse(status_code=status_code, content=error_body(message))
    return await unhandled_error_handler(request, exc)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_error",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    report_api_error(
        exc,
        method=request.method,
        path=request.url.path,
        status_code=500,
        correlation_id=get_correlation_id(),
    )

    settings = request.app.state.settings
    if settings.is_production:
        return JSONResponse(status_code=500, content=error_body(GENERIC_ERROR_MESSAGE))

    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) or exc.__class__.__name__,
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(OSError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
