"""
Notebox Backend — Request Timeout Middleware
==============================================

What:  Bounds every request to REQUEST_TIMEOUT_SECONDS and answers
       504 Gateway Timeout when the handler runs longer.
How:   Plain ASGI middleware running the inner app under asyncio.wait_for.
       On timeout the handler is cancelled; its database session closes
       without committing.
"""

import asyncio
import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from notebox.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class TimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout_seconds: float = 15.0):
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, receive, send_wrapper),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            rid = request_id_var.get("")
            logger.error(
                "%s %s exceeded %.1fs",
                scope.get("method", ""),
                scope.get("path", ""),
                self.timeout_seconds,
            )
            # Headers already went out; the client sees a truncated body
            if response_started:
                return
            response = JSONResponse(
                status_code=504,
                content={
                    "error": "timeout",
                    "message": "The request took too long to complete. Please try again.",
                    "request_id": rid,
                },
            )
            await response(scope, receive, send)
