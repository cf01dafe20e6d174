"""Middleware: request IDs, security headers, CORS preflight."""

import logging
import uuid
from contextvars import ContextVar

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Context var accessible from anywhere during a request lifecycle
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response cycle.

    Reads ``X-Request-ID`` from the incoming request headers; if absent,
    generates a new UUID4.  The ID is stored in a context variable so that
    log records can include it (see ``RequestIDLogFilter``), and is echoed
    back on the response as ``X-Request-ID``.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add standard security headers to every response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class PreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware that answers every preflight with 204 and no body.

    Starlette replies ``200 OK`` with a text body for accepted preflights and
    ``400 Disallowed CORS ...`` for rejected ones. A rejected preflight still
    gets an empty 204, just without ``Access-Control-Allow-*`` headers, so the
    browser blocks the follow-up request.
    """

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return Response(status_code=204, headers={"vary": "Origin"})
        headers = {
            key: value
            for key, value in response.headers.items()
            if key.startswith("access-control-") or key == "vary"
        }
        return Response(status_code=204, headers=headers)


class RequestIDLogFilter(logging.Filter):
    """Copy the current request ID onto every log record as ``request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
