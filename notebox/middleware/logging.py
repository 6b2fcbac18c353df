"""
Notebox Backend — Access Log Middleware
=========================================

What:  One `notebox.access` line per request.
How:   The path is logged as its route template (`/notes/{note_id}`) so log
       searches group by endpoint, with the concrete note id as a separate
       field. Signed retrieval URLs under /files are logged without their
       query string; the signature must not end up in logs.

Level follows the status class: 5xx ERROR, 4xx WARNING, else INFO.
Health checks are not logged. Bodies (note text, file bytes) never are.
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from notebox.middleware.request_id import request_id_var

logger = logging.getLogger("notebox.access")

UNLOGGED_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def match_route(request: Request) -> Tuple[Optional[str], Dict[str, Any]]:
    """Path template and path parameters of the route serving this request."""
    for route in request.app.router.routes:
        match, child_scope = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", None) or None, child_scope.get("path_params", {})
    return None, {}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        template, path_params = match_route(request)
        path = template or request.url.path
        status = response.status_code
        size = response.headers.get("content-length", "-")

        fields: Dict[str, Any] = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "route": path,
            "status": status,
            "duration_ms": round(duration_ms, 2),
            "response_bytes": size,
            "client_ip": request.client.host if request.client else "unknown",
        }
        note_id = path_params.get("note_id")
        if note_id is not None:
            fields["note_id"] = note_id

        logger.log(
            level_for_status(status),
            "%s %s %d %s bytes %.1fms%s",
            request.method,
            path,
            status,
            size,
            duration_ms,
            f" note={note_id}" if note_id is not None else "",
            extra=fields,
        )
        return response
