"""Auth adapter over the backend's GoTrue client.

The library raises on every failure; callers here get ``Ok``/``Err`` with an
``AuthError`` whose ``kind`` the pages switch on. Library models are converted
to ``AuthUser``/``Session`` at this boundary and change notifications reach
listeners as ``AuthChangeEvent`` members.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from pydantic import ValidationError
from supabase import AuthRetryableError
from supabase_auth import AsyncGoTrueClient
from supabase_auth.errors import AuthError as GoTrueError
from supabase_auth.types import Session as GoTrueSession, Subscription, User as GoTrueUser

from ..core.errors import AuthError, AuthErrorKind
from .storage import SessionStore
from .types import AuthChangeEvent, AuthUser, Err, Ok, Result, Session, SignUpResult

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthChangeEvent, "Session | None"], None]

_FAILURES = (GoTrueError, httpx.HTTPError, ValidationError)

_NETWORK_MESSAGE = "Cannot reach the server. Check your internet connection."

_ERROR_CODE_KINDS = {
    "invalid_credentials": AuthErrorKind.INVALID_CREDENTIALS,
    "email_not_confirmed": AuthErrorKind.UNCONFIRMED_ACCOUNT,
    "phone_not_confirmed": AuthErrorKind.UNCONFIRMED_ACCOUNT,
    "over_request_rate_limit": AuthErrorKind.RATE_LIMITED,
    "over_email_send_rate_limit": AuthErrorKind.RATE_LIMITED,
    "over_sms_send_rate_limit": AuthErrorKind.RATE_LIMITED,
    "weak_password": AuthErrorKind.WEAK_PASSWORD,
    "user_already_exists": AuthErrorKind.DUPLICATE_EMAIL,
    "email_exists": AuthErrorKind.DUPLICATE_EMAIL,
    "provider_disabled": AuthErrorKind.REDIRECT_FAILED,
    "bad_oauth_callback": AuthErrorKind.REDIRECT_FAILED,
    "flow_state_not_found": AuthErrorKind.REDIRECT_FAILED,
    "flow_state_expired": AuthErrorKind.REDIRECT_FAILED,
}

# Older GoTrue releases only send a human message.
_MESSAGE_KINDS = (
    ("invalid login credentials", AuthErrorKind.INVALID_CREDENTIALS),
    ("email not confirmed", AuthErrorKind.UNCONFIRMED_ACCOUNT),
    ("already registered", AuthErrorKind.DUPLICATE_EMAIL),
    ("password should be", AuthErrorKind.WEAK_PASSWORD),
    ("rate limit", AuthErrorKind.RATE_LIMITED),
)


def auth_error_from_exception(exc: Exception) -> AuthError:
    """Translate whatever the auth library raised into an ``AuthError``."""

    if isinstance(exc, (httpx.HTTPError, AuthRetryableError)):
        return AuthError(AuthErrorKind.NETWORK, _NETWORK_MESSAGE, status=getattr(exc, "status", None) or None)
    if isinstance(exc, ValidationError):
        return AuthError(AuthErrorKind.UNKNOWN, "Unexpected response from the authentication service")
    message = getattr(exc, "message", None) or str(exc) or "Authentication request failed"
    status = getattr(exc, "status", None)
    kind = _ERROR_CODE_KINDS.get(str(getattr(exc, "code", None) or ""))
    if kind is None:
        lowered = str(message).lower()
        for fragment, candidate in _MESSAGE_KINDS:
            if fragment in lowered:
                kind = candidate
                break
    if kind is None and status == 429:
        kind = AuthErrorKind.RATE_LIMITED
    return AuthError(kind or AuthErrorKind.UNKNOWN, str(message), status=status)


def to_user(user: GoTrueUser) -> AuthUser:
    return AuthUser.model_validate(user.model_dump(mode="json"))


def to_session(session: GoTrueSession) -> Session:
    return Session.model_validate(session.model_dump(mode="json"))


class AuthGateway:
    def __init__(
        self,
        client: AsyncGoTrueClient,
        *,
        store: SessionStore,
        storage_key: str,
        oauth_providers: list[str] | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._storage_key = storage_key
        self._verifier_key = f"{storage_key}-code-verifier"
        self._oauth_providers = {p.lower() for p in (oauth_providers or [])}

    # ---------- listeners

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        """Register ``callback``; a failing listener is logged and never reaches the caller."""

        def relay(event: str, session: GoTrueSession | None) -> None:
            try:
                change = AuthChangeEvent(event)
            except ValueError:
                logger.debug("Ignoring auth event %s", event)
                return
            try:
                callback(change, to_session(session) if session else None)
            except Exception:
                logger.exception("Auth listener failed while handling %s", change.value)

        return self._client.on_auth_state_change(relay)

    # ---------- session API

    async def get_session(self) -> Result[Session | None, AuthError]:
        try:
            session = await self._client.get_session()
        except _FAILURES as exc:
            error = auth_error_from_exception(exc)
            if error.kind is not AuthErrorKind.NETWORK:
                await self._drop_session()
            return Err(error)
        return Ok(to_session(session) if session else None)

    async def _drop_session(self) -> None:
        # The refresh token is dead; keeping it would fail the same way next time.
        await self._store.remove_item(self._storage_key)
        await self._client.sign_out({"scope": "local"})

    async def sign_in_with_password(self, email: str, password: str) -> Result[Session, AuthError]:
        try:
            response = await self._client.sign_in_with_password({"email": email, "password": password})
        except _FAILURES as exc:
            return Err(auth_error_from_exception(exc))
        if response.session is None:
            return Err(AuthError(AuthErrorKind.UNKNOWN, "Authentication service returned no session"))
        session = to_session(response.session)
        logger.info("User signed in", extra={"extra_data": {"event": "LOGIN", "user_id": session.user.id}})
        return Ok(session)

    async def sign_up(
        self,
        email: str,
        password: str,
        data: dict[str, Any] | None = None,
        redirect_to: str | None = None,
    ) -> Result[SignUpResult, AuthError]:
        options: dict[str, Any] = {"data": data or {}}
        if redirect_to:
            options["email_redirect_to"] = redirect_to
        try:
            response = await self._client.sign_up({"email": email, "password": password, "options": options})
        except _FAILURES as exc:
            return Err(auth_error_from_exception(exc))
        if response.session is not None:
            session = to_session(response.session)
            return Ok(SignUpResult(user=session.user, session=session))
        if response.user is None:
            return Err(AuthError(AuthErrorKind.UNKNOWN, "Authentication service returned an invalid user"))
        # With confirmations on, an existing address comes back as a user with no identities.
        if response.user.identities == []:
            return Err(AuthError(AuthErrorKind.DUPLICATE_EMAIL, "User already registered", status=422))
        return Ok(SignUpResult(user=to_user(response.user), session=None))

    async def sign_in_with_oauth(self, provider: str, redirect_to: str) -> Result[str, AuthError]:
        provider = (provider or "").strip().lower()
        if provider not in self._oauth_providers:
            return Err(AuthError(AuthErrorKind.REDIRECT_FAILED, f"Sign in with {provider or 'provider'} is not available"))
        try:
            response = await self._client.sign_in_with_oauth(
                {"provider": provider, "options": {"redirect_to": redirect_to}}
            )
        except _FAILURES as exc:
            return Err(auth_error_from_exception(exc))
        return Ok(response.url)

    async def exchange_code_for_session(self, auth_code: str) -> Result[Session, AuthError]:
        verifier = await self._store.get_item(self._verifier_key)
        if not verifier:
            return Err(AuthError(AuthErrorKind.REDIRECT_FAILED, "Sign-in link expired. Please try again."))
        try:
            response = await self._client.exchange_code_for_session(
                {"auth_code": auth_code, "code_verifier": verifier}
            )
        except _FAILURES as exc:
            # A verifier is good for one attempt only.
            await self._store.remove_item(self._verifier_key)
            return Err(auth_error_from_exception(exc))
        if response.session is None:
            return Err(AuthError(AuthErrorKind.UNKNOWN, "Authentication service returned no session"))
        return Ok(to_session(response.session))

    async def sign_out(self) -> Result[None, AuthError]:
        """Revoke the session everywhere; a server that already forgot it counts as success."""

        try:
            await self._client.sign_out({"scope": "global"})
        except _FAILURES as exc:
            return Err(auth_error_from_exception(exc))
        return Ok(None)


__all__ = [
    "AuthGateway",
    "AuthListener",
    "Subscription",
    "auth_error_from_exception",
    "to_session",
    "to_user",
]
