"""
Request Timeout Middleware

Answers 408 when a handler has not started its response within the limit.
The handler keeps running to completion in the background (its database
work is not cancelled); whatever it sends afterwards is discarded.
"""

import asyncio
from typing import Set

import structlog
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = structlog.get_logger(__name__)

TIMEOUT_MESSAGE = "Request timeout. Please try again."
DEFAULT_TIMEOUT_SECONDS = 30.0


class RequestTimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds
        # Handlers still running after their request timed out
        self._orphans: Set[asyncio.Task] = set()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False
        timed_out = False

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            if timed_out:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        task = asyncio.ensure_future(self.app(scope, receive, guarded_send))
        done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)

        if task in done or response_started:
            # Completed, or already streaming; the limit only covers the start
            await task
            return

        timed_out = True
        logger.warning(
            "request_timeout",
            method=scope["method"],
            path=scope["path"],
            timeout_seconds=self.timeout_seconds,
        )
        self._orphans.add(task)
        task.add_done_callback(self._orphan_finished)

        response = JSONResponse({"error": TIMEOUT_MESSAGE}, status_code=408)
        await response(scope, receive, send)

    def _orphan_finished(self, task: asyncio.Task) -> None:
        self._orphans.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("request_failed_after_timeout", error=str(error))

    @property
    def pending(self) -> int:
        """Number of timed-out handlers still running."""
        return len(self._orphans)
