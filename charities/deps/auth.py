"""Request wiring for the auth core.

Each page request mounts its own application root: a ``BackendClient`` bound
to the visitor's cookie session, a ``Navigator`` and an ``AuthProvider`` that
lives exactly as long as the request. ``guard_page`` then plugs the route
guard in front of the handler.
"""

from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends, Request

from ..auth.guard import GuardConfig, GuardState, RouteGuard
from ..auth.navigation import Navigator
from ..auth.provider import AuthProvider
from ..backend.client import BackendClient, create_client
from ..backend.storage import SessionStore
from ..core.config import AppSettings, settings
from ..core.errors import GuardPending, GuardRedirect
from ..middlewares import principal_ctx_var


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


def app_settings(request: Request) -> AppSettings:
    """Settings the running app was built with."""

    return getattr(request.app.state, "settings", None) or settings


async def get_backend(request: Request) -> BackendClient:
    store = SessionStore(request.session)
    return await create_client(request.app.state.http, store, app_settings(request))


def get_navigator() -> Navigator:
    return Navigator()


async def get_auth(
    request: Request,
    backend: BackendClient = Depends(get_backend),
    navigator: Navigator = Depends(get_navigator),
) -> AsyncIterator[AuthProvider]:
    config = app_settings(request)
    provider = AuthProvider(
        backend,
        navigator,
        public_route=config.PUBLIC_LANDING_ROUTE,
        oauth_redirect_url=config.oauth_callback_url,
    )
    async with provider:
        if provider.current_user is not None:
            _set_principal(request, provider.current_user.id)
        yield provider


def guard_page(*, require_auth: bool = True, redirect_to: str | None = None):
    """Build a dependency that only lets the handler run when the guard allows it.

    Routes default to the serving app's settings, read on every request.
    """

    async def dependency(
        request: Request,
        auth: AuthProvider = Depends(get_auth),
        navigator: Navigator = Depends(get_navigator),
    ) -> AuthProvider:
        current = app_settings(request)
        config = GuardConfig(
            require_auth=require_auth,
            redirect_to=redirect_to or current.SIGN_IN_ROUTE,
            landing_route=current.AUTH_LANDING_ROUTE,
        )
        guard = RouteGuard(config, navigator)
        decision = guard.attach(auth)
        request.state.route_guard = guard
        if decision.state is GuardState.PENDING:
            raise GuardPending()
        if decision.state is GuardState.REDIRECTING:
            raise GuardRedirect(decision.target or config.redirect_to)
        return auth

    return dependency


require_session = guard_page(require_auth=True)
public_only = guard_page(require_auth=False)


__all__ = [
    "app_settings",
    "get_auth",
    "get_backend",
    "get_navigator",
    "guard_page",
    "public_only",
    "require_session",
]
