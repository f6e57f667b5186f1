"""
Request Guard Middleware

Runs the per-request security checks for API paths, in order:

1. Rate limit: the first matching rule is charged against the caller's
   session key; over the limit answers 429.
2. CSRF: safe methods mint (or reuse) a token and return it in the
   X-CSRF-Token response header; state-changing methods must echo a valid
   token back or get 403.

Authentication is enforced later by route dependencies; here the caller's
token is only peeked at to pick the session key.
"""

from typing import Dict, Optional, Tuple

import structlog
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.services.auth import resolve_identity
from app.services.security.csrf import CSRF_HEADER, SAFE_METHODS, CsrfProtector
from app.services.security.rate_limit import RateLimiter
from app.services.security.session import derive_session_key

logger = structlog.get_logger(__name__)

CSRF_MISSING_MESSAGE = "CSRF token missing. Please include X-CSRF-Token header."
CSRF_INVALID_MESSAGE = "Invalid CSRF token. Please refresh the page and try again."
RATE_LIMITED_MESSAGE = "Too many requests"


def request_session_key(request: Request, jwt_secret: Optional[str]) -> str:
    """Session key of the caller, authenticated or not."""
    claims = resolve_identity(
        request.cookies,
        request.headers.get("authorization"),
        jwt_secret,
    )
    return derive_session_key(
        claims.username if claims else None,
        request.headers.get("x-forwarded-for"),
        request.client.host if request.client else None,
        request.headers.get("user-agent"),
    )


class RequestGuardMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        csrf: CsrfProtector,
        limiter: RateLimiter,
        jwt_secret: Optional[str] = None,
        path_prefix: str = "/api",
        csrf_exempt_paths: Tuple[str, ...] = (),
    ) -> None:
        self.app = app
        self.csrf = csrf
        self.limiter = limiter
        self.jwt_secret = jwt_secret
        self.path_prefix = path_prefix
        self.csrf_exempt_paths = csrf_exempt_paths

    def session_key(self, request: Request) -> str:
        return request_session_key(request, self.jwt_secret)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        method = request.method.upper()
        path = scope["path"]
        session_key = self.session_key(request)
        extra_headers: Dict[str, str] = {}

        rule = self.limiter.rule_for(method, path)
        if rule is not None:
            result = await self.limiter.hit(rule, session_key)
            extra_headers.update(result.headers())
            if not result.allowed:
                response = JSONResponse(
                    {
                        "error": RATE_LIMITED_MESSAGE,
                        "details": {
                            "retryAfter": result.retry_after,
                            "message": f"Rate limit exceeded. Please try again in {result.retry_after} seconds.",
                        },
                    },
                    status_code=429,
                    headers={**extra_headers, "Retry-After": str(result.retry_after)},
                )
                await response(scope, receive, send)
                return

        if method in SAFE_METHODS:
            extra_headers[CSRF_HEADER] = await self.csrf.issue(session_key)
        elif path not in self.csrf_exempt_paths:
            token = request.headers.get(CSRF_HEADER)
            if not token:
                await self._reject_csrf(scope, receive, send, CSRF_MISSING_MESSAGE, session_key, extra_headers)
                return
            if not await self.csrf.validate(session_key, token):
                await self._reject_csrf(scope, receive, send, CSRF_INVALID_MESSAGE, session_key, extra_headers)
                return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in extra_headers.items():
                    headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_headers)

    async def _reject_csrf(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        message: str,
        session_key: str,
        headers: Dict[str, str],
    ) -> None:
        logger.warning("csrf_rejected", path=scope["path"], reason=message, session_key=session_key)
        response = JSONResponse({"error": message}, status_code=403, headers=headers)
        await response(scope, receive, send)
