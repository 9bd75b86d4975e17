"""Request correlation for ProxyForms.

Every request gets a request id, taken from the caller or the edge proxy when
present, and a correlation id that defaults to it. Both are echoed on the
response and attached to every log record written while the request runs.

Tenant and user context start empty for each request; the public and
dashboard dependencies fill them in once the blog id or user id is known.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from proxyforms.observability.logging import (
    blog_id_var,
    correlation_id_var,
    request_id_var,
    user_id_var,
)

REQUEST_ID_HEADER = "x-request-id"
CORRELATION_ID_HEADER = "x-correlation-id"

# Checked in order; the edge proxy id lets logs be joined with platform logs
_INBOUND_REQUEST_ID_HEADERS = (REQUEST_ID_HEADER, "x-vercel-id")


def resolve_request_id(headers: Headers) -> str:
    """Inbound request id, or a fresh UUID4."""
    for name in _INBOUND_REQUEST_ID_HEADERS:
        value = headers.get(name, "").strip()
        if value:
            return value
    return str(uuid.uuid4())


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Binds request, correlation, tenant and user context for one request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers)
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or request_id
        request.state.request_id = request_id
        request.state.correlation_id = correlation_id

        bound: list[tuple[ContextVar[str], Token[str]]] = [
            (request_id_var, request_id_var.set(request_id)),
            (correlation_id_var, correlation_id_var.set(correlation_id)),
            (blog_id_var, blog_id_var.set("")),
            (user_id_var, user_id_var.set("")),
        ]
        try:
            response = await call_next(request)
        finally:
            for var, token in reversed(bound):
                var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
