"""ASGI middlewares wrapped around every Journal API request."""

from __future__ import annotations

from .request_id import RequestIdMiddleware, accepted_request_id, principal_ctx_var, request_id_ctx_var
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "accepted_request_id",
    "principal_ctx_var",
    "request_id_ctx_var",
]
