"""Typed shapes the app works with.

Every remote call returns either ``Ok(value)`` or ``Err(error)`` instead of
raising, so callers have to look at the tag before touching the payload. The
auth library's own models are converted into ``AuthUser`` and ``Session``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err[E]]


class AuthChangeEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AuthUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    app_metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    email_confirmed_at: str | None = None
    identities: list[dict[str, Any]] | None = None

    @property
    def full_name(self) -> str | None:
        return self.user_metadata.get("full_name") or None

    @property
    def avatar_url(self) -> str | None:
        return self.user_metadata.get("avatar_url") or None


class Session(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    expires_at: int | None = None
    user: AuthUser


class SignUpResult(BaseModel):
    """Registration outcome: a session only when the backend auto-confirms."""

    user: AuthUser | None = None
    session: Session | None = None

    @property
    def needs_confirmation(self) -> bool:
        return self.session is None


__all__ = [
    "AuthChangeEvent",
    "AuthUser",
    "Err",
    "Ok",
    "Result",
    "Session",
    "SignUpResult",
]
