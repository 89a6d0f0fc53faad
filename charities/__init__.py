"""Application factory and top-level wiring for CharitiesNextToMe.

This module is the glue that brings together configuration, the shared HTTP
connection pool, the cookie session, HTML pages and error handling. Read it
for a bird's-eye view of *what* pieces exist, *when* they are initialised and
*how* they interact:

* the lifespan opens one ``httpx.AsyncClient`` per process and closes it on
  shutdown; every visit borrows it through ``request.app.state.http``;
* ``SessionMiddleware`` keeps the signed session cookie, which plays the role
  of the browser storage the auth session is persisted in;
* the route guard signals ``GuardRedirect`` / ``GuardPending`` and the
  handlers below turn them into a redirect or the loading placeholder.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .backend.client import create_http_client
from .core.config import AppSettings, settings as default_settings
from .core.errors import (
    GuardPending,
    GuardRedirect,
    guard_redirect_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    ``transport`` is handed to the shared ``httpx.AsyncClient``; tests pass an
    ``httpx.MockTransport`` to stand in for the hosted backend.
    """

    settings = settings or default_settings
    if not settings.backend_configured:
        logger.warning("SUPABASE_URL / SUPABASE_ANON_KEY are not set; backend calls will fail")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        extra = {"transport": transport} if transport is not None else {}
        app.state.http = create_http_client(settings, **extra)
        try:
            yield
        finally:
            await app.state.http.aclose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings

    # ---------- Middleware ----------
    # Added innermost first: the request id wraps everything, the session
    # cookie is decoded before any route dependency reads it.
    app.add_middleware(SecurityHeadersMiddleware, storage_origin=settings.SUPABASE_URL)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.APP_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=settings.SESSION_HTTPS_ONLY,
    )
    app.add_middleware(RequestIdMiddleware)

    # ---------- Routers ----------
    from .routers import auth_ui, feed, home, profile, search
    from .routers import map as charity_map

    app.include_router(home.router)
    app.include_router(auth_ui.router)
    app.include_router(feed.router)
    app.include_router(search.router)
    app.include_router(charity_map.router)
    app.include_router(profile.router)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    # ---------- Exception handling ----------
    from .routers.common import render

    async def guard_pending_handler(request: Request, exc: GuardPending):
        return render(request, None, "loading.html")

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(GuardRedirect, guard_redirect_handler)
    app.add_exception_handler(GuardPending, guard_pending_handler)
    return app


__all__ = ["create_app"]
