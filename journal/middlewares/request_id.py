"""Per-request correlation ids and the one access-log line each request gets.

A caller may pass its own ``X-Request-ID``; it is echoed back only when it is
a short token of safe characters, otherwise a fresh id replaces it. The id
lives in ``request_id_ctx_var`` for the duration of the request, and the
acting user (set by the auth gates) in ``principal_ctx_var``.
"""

from __future__ import annotations

import logging
import re
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal", default=None)
logger = logging.getLogger("journal.http")


def accepted_request_id(value: str | None) -> str:
    """Keep a caller's id when it is safe to log and echo, else mint one."""
    if value and REQUEST_ID_RE.match(value):
        return value
    return uuid4().hex


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestIdMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, header_name: str = REQUEST_ID_HEADER) -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = accepted_request_id(request.headers.get(self.header_name))
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers[self.header_name] = request_id
            response.headers.setdefault("X-Response-Time", f"{duration_ms:.2f}ms")
            details = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client": request.client.host if request.client else None,
            }
            # Auth runs in a child context, so the principal comes back on request.state.
            principal = getattr(request.state, "principal", None)
            if principal:
                details["principal"] = principal
            logger.log(_level_for(response.status_code), "http.request", extra={"extra_data": details})
            return response
        finally:
            request_id_ctx_var.reset(token)
