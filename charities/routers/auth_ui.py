"""Beginner-friendly overview for this module.

WHAT: The sign-in / sign-up page and every auth form action.
WHEN: Visitors land on ``/auth`` whenever the route guard sends them here, and
the OAuth provider sends them back to ``/auth/callback``.
WHY: These are the only places that call the mutating methods of the auth
container; its change listener then takes care of profile creation and of the
sign-out navigation.
HOW: Each handler mounts the container through ``get_auth``, calls one action,
and turns ``AuthError`` into inline form errors.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse

from ..auth.navigation import Navigator
from ..auth.provider import AuthProvider
from ..core.errors import AuthError, AuthErrorKind
from ..deps.auth import app_settings, get_auth, get_navigator, public_only
from ..schemas.auth import SignInForm, SignUpForm, validate_password
from .common import render, see_other

logger = logging.getLogger(__name__)

router = APIRouter()

SIGN_UP_CONFIRMATION = "Account created successfully! Please check your email to verify your account."


def _status_for(exc: AuthError) -> int:
    return 429 if exc.kind is AuthErrorKind.RATE_LIMITED else 400


def _auth_form(
    request: Request,
    auth: AuthProvider,
    *,
    tab: str = "signin",
    error: str = "",
    success: str = "",
    email: str = "",
    full_name: str = "",
    status_code: int = 200,
):
    config = app_settings(request)
    context = {
        "tab": tab,
        "form_error": error or request.query_params.get("error", ""),
        "success": success,
        "email": email,
        "full_name": full_name,
        "oauth_providers": config.oauth_providers,
        "min_password_length": config.MIN_PASSWORD_LENGTH,
    }
    return render(request, auth, "auth.html", context, status_code=status_code)


@router.get("/auth", response_class=HTMLResponse)
async def auth_page(request: Request, tab: str = "signin", auth: AuthProvider = Depends(public_only)):
    return _auth_form(request, auth, tab="signup" if tab == "signup" else "signin")


@router.post("/auth/signin", response_class=HTMLResponse)
async def sign_in_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    auth: AuthProvider = Depends(get_auth),
):
    form = SignInForm(email=email, password=password)
    try:
        await auth.sign_in(form.email, form.password)
    except AuthError as exc:
        logger.info("Sign in rejected: %s", exc.kind.value)
        return _auth_form(request, auth, error=exc.message, email=form.email, status_code=_status_for(exc))
    return see_other(app_settings(request).AUTH_LANDING_ROUTE)


@router.post("/auth/signup", response_class=HTMLResponse)
async def sign_up_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    full_name: str = Form(""),
    auth: AuthProvider = Depends(get_auth),
):
    form = SignUpForm(email=email, password=password, full_name=full_name)
    try:
        validate_password(form.password, app_settings(request).MIN_PASSWORD_LENGTH)
    except ValueError as exc:
        return _auth_form(
            request, auth, tab="signup", error=str(exc), email=form.email, full_name=form.full_name, status_code=400
        )
    try:
        result = await auth.sign_up(form.email, form.password, form.full_name)
    except AuthError as exc:
        logger.info("Sign up rejected: %s", exc.kind.value)
        return _auth_form(
            request,
            auth,
            tab="signup",
            error=exc.message,
            email=form.email,
            full_name=form.full_name,
            status_code=_status_for(exc),
        )
    if result.needs_confirmation:
        return _auth_form(request, auth, tab="signin", success=SIGN_UP_CONFIRMATION, email=form.email)
    return see_other(app_settings(request).AUTH_LANDING_ROUTE)


@router.post("/auth/oauth/{provider}", response_class=HTMLResponse)
async def oauth_start(request: Request, provider: str, auth: AuthProvider = Depends(get_auth)):
    try:
        url = await auth.sign_in_with_oauth(provider)
    except AuthError as exc:
        logger.warning("OAuth redirect for %s failed: %s", provider, exc.message)
        return _auth_form(request, auth, error=exc.message, status_code=_status_for(exc))
    return see_other(url)


@router.get("/auth/callback")
async def oauth_callback(
    request: Request,
    code: str = "",
    error: str = "",
    error_description: str = "",
    auth: AuthProvider = Depends(get_auth),
):
    if error or not code:
        sign_in_route = app_settings(request).SIGN_IN_ROUTE
        message = error_description or error or "Sign in was cancelled"
        return see_other(f"{sign_in_route}?{urlencode({'error': message})}")
    try:
        await auth.exchange_code_for_session(code)
    except AuthError as exc:
        logger.warning("OAuth code exchange failed: %s", exc.message)
        return see_other(f"{app_settings(request).SIGN_IN_ROUTE}?{urlencode({'error': exc.message})}")
    return see_other(app_settings(request).AUTH_LANDING_ROUTE)


@router.post("/auth/signout")
async def sign_out_submit(
    request: Request,
    auth: AuthProvider = Depends(get_auth),
    navigator: Navigator = Depends(get_navigator),
):
    try:
        await auth.sign_out()
    except AuthError as exc:
        logger.warning("Sign out failed: %s", exc.message)
        config = app_settings(request)
        return see_other(f"{config.AUTH_LANDING_ROUTE}?{urlencode({'error': exc.message})}")
    return see_other(navigator.target or app_settings(request).PUBLIC_LANDING_ROUTE)
