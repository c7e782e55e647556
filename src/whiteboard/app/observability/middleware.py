"""Request correlation, logging and metrics middleware.

- ``RequestIdMiddleware``: accepts a well-formed ``X-Request-ID`` or
  generates one, binds it to ``request_id_ctx`` and echoes it back.
- ``RequestLoggingMiddleware``: one ``request_completed`` line per request,
  carrying the acting user when the auth guard resolved one.
- ``MetricsMiddleware``: Prometheus HTTP counters and latency histogram,
  labelled with the board-id-collapsed path. Scrapes of ``/metrics`` are
  not counted.
"""

from __future__ import annotations

import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging import get_logger, request_id_ctx
from .metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_FLIGHT,
    HTTP_REQUESTS_TOTAL,
)

logger = get_logger(__name__)

_VALID_REQUEST_ID = re.compile(r"^[a-zA-Z0-9\-]{8,128}$")

# /api/boards/<id>[/...] except the static listing routes.
_BOARD_ID_SEGMENT = re.compile(r"^/api/boards/(?!public$|shared$|recents$)[^/]+")

UNMETERED_PATHS: frozenset[str] = frozenset({"/metrics"})


def normalize_metric_path(path: str) -> str:
    """Collapse board ids so metric labels stay low-cardinality."""
    return _BOARD_ID_SEGMENT.sub("/api/boards/{id}", path)


def _actor_id(request: Request) -> str | None:
    identity = getattr(request.state, "auth_identity", None)
    return identity.user_id if identity is not None else None


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        incoming = request.headers.get("x-request-id", "")
        rid = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        request.state.request_id = rid
        ctx_token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(ctx_token)

        response.headers["X-Request-ID"] = rid
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in UNMETERED_PATHS:
            return await call_next(request)

        method = request.method
        path = normalize_metric_path(request.url.path)
        status = "500"

        HTTP_REQUESTS_IN_FLIGHT.inc()
        start = time.perf_counter()
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            HTTP_REQUESTS_IN_FLIGHT.dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=path).observe(
                time.perf_counter() - start,
            )
            HTTP_REQUESTS_TOTAL.labels(method=method, path=path, status=status).inc()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
            user_id=_actor_id(request),
        )
        return response
