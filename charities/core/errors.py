from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    UNCONFIRMED_ACCOUNT = "unconfirmed_account"
    RATE_LIMITED = "rate_limited"
    WEAK_PASSWORD = "weak_password"
    DUPLICATE_EMAIL = "duplicate_email"
    REDIRECT_FAILED = "redirect_failed"
    NETWORK = "network"
    UNKNOWN = "unknown"


class AuthError(Exception):
    """A sign-in, sign-up, OAuth or sign-out call the backend rejected."""

    def __init__(self, kind: AuthErrorKind, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status


class ProfileBootstrapError(Exception):
    """Creating the ``users`` row for a freshly signed-in account failed."""


class StorageError(Exception):
    """The session store could not read, write or remove a value."""


# PostgreSQL SQLSTATE for unique_violation; PostgREST forwards it verbatim.
UNIQUE_VIOLATION = "23505"


class QueryError(Exception):
    """A data-store or object-storage call failed."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        self.status = status

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION


class AvatarValidationError(ValueError):
    """Uploaded profile picture failed the type or size checks."""


class GuardRedirect(Exception):
    """Raised by the route guard to send the browser elsewhere."""

    def __init__(self, target: str) -> None:
        super().__init__(target)
        self.target = target


class GuardPending(Exception):
    """Raised by the route guard while auth state is still loading."""


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def _wants_html(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        sign_in_route = (getattr(request.app.state, "settings", None) or settings).SIGN_IN_ROUTE
        if _wants_html(request) and not request.url.path.startswith(sign_in_route):
            return RedirectResponse(url=sign_in_route, status_code=status.HTTP_303_SEE_OTHER)
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": exc.errors()},
        )
    raise exc


async def guard_redirect_handler(request: Request, exc: GuardRedirect):
    # No body: protected content must never render on the way out.
    return RedirectResponse(url=exc.target, status_code=status.HTTP_303_SEE_OTHER)
