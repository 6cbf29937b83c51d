"""Correlation ids for HTTP requests."""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from signal_relay.constants import CONNECTION_ID_LENGTH

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def _resolve_id(request: Request) -> str:
    """Reuse the caller's id when given, otherwise mint one; both are cut to 8 chars."""
    incoming = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
    return incoming[:CONNECTION_ID_LENGTH]


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tag every HTTP request with a short correlation id.

    The id is exposed as ``request.state.request_id``, picked up by the log
    formatters for the duration of the request and echoed back in the
    ``X-Correlation-ID`` response header. Relay connections use their
    ``connection_id`` for the same purpose.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = _resolve_id(request)
        request.state.request_id = cid

        token = correlation_id.set(cid)
        try:
            response = await call_next(request)
        finally:
            correlation_id.reset(token)

        response.headers[CORRELATION_HEADER] = cid
        return response


def get_correlation_id() -> str:
    """
    Correlation id of the request being served.

    Returns:
        The id, or an empty string outside of a request.
    """
    return correlation_id.get()
