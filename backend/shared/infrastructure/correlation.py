"""
Request correlation.

Every REST request gets an id (the caller's X-Request-ID when it is usable,
a fresh UUID otherwise). The id is attached to log records and copied into
the change notifications the request publishes, so a gateway refresh can be
traced back to the write that caused it.
"""

import re
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

REQUEST_ID_HEADER = "X-Request-ID"

# Caller-supplied ids end up in JSON logs and Redis payloads
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str | None:
    """Id of the request being handled, or None outside a request."""
    return request_id_var.get() or None


def resolve_request_id(header_value: str | None) -> str:
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    return str(uuid.uuid4())


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds the request id for the duration of the request and echoes it back."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_var.set(request_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class CorrelationIdFilter:
    """Logging filter that stamps records with the current request id ("-" if none)."""

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
