"""
Notebox Backend — Request Correlation IDs
===========================================

What:  Gives every request an ID that appears in its log lines, its error
       bodies and the X-Request-ID response header.
How:   A client-supplied X-Request-ID is reused only when it is a short token
       of safe characters; anything else (too long, spaces, newlines) is
       replaced by a fresh 12-hex-digit ID so it cannot forge log lines.
       The ID lives in `request_id_var` for the duration of the request and
       RequestIDLogFilter copies it onto every log record.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def accept_client_id(value: Optional[str]) -> Optional[str]:
    """Return the client's ID if it is safe to log and echo, else None."""
    if value and _CLIENT_ID_RE.match(value):
        return value
    return None


class RequestIDLogFilter(logging.Filter):
    """
    Adds `request_id` to each record so formatters can use %(request_id)s.

    Records that already carry one (the access log passes it via `extra`)
    keep theirs. Outside a request the field is "-".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accept_client_id(request.headers.get(REQUEST_ID_HEADER)) or new_request_id()

        # Left set after the response: the catch-all 500 handler runs outside
        # this middleware and still reports the ID
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
