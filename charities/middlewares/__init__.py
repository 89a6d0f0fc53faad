"""Cross-cutting HTTP middleware.

``RequestIdMiddleware`` owns the two context variables the JSON log formatter
reads; the auth dependency fills ``principal_ctx_var`` once a visitor's
session has been loaded.
"""

from __future__ import annotations

from .request_id import RequestIdMiddleware, principal_ctx_var, request_id_ctx_var
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "RequestIdMiddleware",
    "SecurityHeadersMiddleware",
    "principal_ctx_var",
    "request_id_ctx_var",
]
