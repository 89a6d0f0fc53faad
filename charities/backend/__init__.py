from __future__ import annotations

from .client import BackendClient, create_client, create_http_client, execute
from .storage import SessionStore
from .types import AuthChangeEvent, AuthUser, Err, Ok, Session

__all__ = [
    "AuthChangeEvent",
    "AuthUser",
    "BackendClient",
    "Err",
    "Ok",
    "Session",
    "SessionStore",
    "create_client",
    "create_http_client",
    "execute",
]
