"""Correlation ID middleware for the bridge HTTP surface.

The identity provider and operator UIs may send an ``X-Correlation-ID``
header. It is stored in a context variable for the duration of the request
so that sinks, the audit trail emitter and log entries all carry it.
"""

import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

CORRELATION_ID_HEADER = "X-Correlation-ID"

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Correlation ID of the current request, or empty string."""
    return correlation_id_ctx.get()


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current context."""
    correlation_id_ctx.set(correlation_id)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind the inbound correlation ID, generating one when absent.

    The value is echoed back in the ``X-Correlation-ID`` response header.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())

        token = correlation_id_ctx.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_ctx.reset(token)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
