"""Middleware HTTP: correlation_id por request e log de acesso."""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "x-correlation-id"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Logger direto: logging.py importa este módulo
_access_logger = logging.getLogger("sales_hearing.access")


def get_correlation_id() -> str:
    return _correlation_id.get()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propaga X-Correlation-ID e loga método, rota, status e latência.

    Tasks de prefetch agendadas durante o request copiam o contexto na
    criação, então seus logs carregam o correlation_id de origem.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        token = _correlation_id.set(correlation_id)
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            _access_logger.info(
                "http_request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "elapsed_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            _correlation_id.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
