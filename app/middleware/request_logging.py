"""
Request Logging Middleware
One structured log line per HTTP request with status and duration
"""

import time

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.services.security.session import normalize_client_ip

logger = structlog.get_logger(__name__)


def _header(scope: Scope, name: bytes) -> str:
    for key, value in scope.get("headers", []):
        if key == name:
            return value.decode("latin-1")
    return ""


class RequestLoggingMiddleware:
    """Pure ASGI middleware; 5xx logs at error, 4xx at warning, the rest at info."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            client = scope.get("client")
            fields = dict(
                method=scope["method"],
                path=scope["path"],
                status=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                ip=normalize_client_ip(_header(scope, b"x-forwarded-for") or (client[0] if client else None)),
                user_agent=_header(scope, b"user-agent")[:100],
            )
            if status_code >= 500:
                logger.error("request_completed", **fields)
            elif status_code >= 400:
                logger.warning("request_completed", **fields)
            else:
                logger.info("request_completed", **fields)
