from __future__ import annotations

import logging
import re
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal", default=None)
logger = logging.getLogger("asset_tracker.request")

# Client supplied ids are echoed into logs and headers, so keep them tame.
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")
_UNLOGGED_PATHS = frozenset({"/health", "/metrics"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log its outcome."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    def _incoming_id(self, request: Request) -> str:
        supplied = (request.headers.get(self.header_name) or "").strip()
        return supplied if _SAFE_ID_RE.match(supplied) else uuid4().hex

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = self._incoming_id(request)
        request.state.request_id = request_id
        # Auth dependencies run in a copied context; they report the
        # principal back through request.state.
        request.state.principal = None
        token = request_id_ctx_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            response.headers[self.header_name] = request_id
            response.headers.setdefault("X-Response-Time", f"{elapsed_ms:.2f}ms")
            if request.url.path not in _UNLOGGED_PATHS:
                fields = {
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": elapsed_ms,
                    "caller": request.state.principal,
                }
                level = logging.WARNING if response.status_code >= 500 else logging.INFO
                logger.log(level, "request.completed", extra={"extra_data": fields})
            return response
        finally:
            request_id_ctx_var.reset(token)
