"""Bits every page router needs: templates, rendering with auth context, redirects."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode, urlsplit

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette import status

from ..auth.provider import AuthProvider
from ..core.jinja import get_templates

templates = get_templates()


def render(
    request: Request,
    auth: AuthProvider | None,
    name: str,
    context: dict[str, Any] | None = None,
    *,
    status_code: int = 200,
):
    payload = {
        "current_user": auth.current_user if auth else None,
        "profile_warning": auth.profile_warning if auth else None,
        "error": request.query_params.get("error", ""),
        "notice": request.query_params.get("notice", ""),
    }
    payload.update(context or {})
    return templates.TemplateResponse(request, name, payload, status_code=status_code)


def safe_next(candidate: str | None, default: str) -> str:
    """Only same-site absolute paths are accepted as post-action redirects."""

    if not candidate or not candidate.startswith("/"):
        return default
    # Browsers read both "//host" and "/\host" as another origin.
    if candidate[1:2] in ("/", "\\"):
        return default
    parts = urlsplit(candidate)
    if parts.scheme or parts.netloc:
        return default
    return candidate


def see_other(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def back_to(next_url: str | None, default: str, **params: str) -> RedirectResponse:
    """Redirect after a form action, carrying ``error``/``notice`` in the query string."""

    target = safe_next(next_url, default)
    if params:
        joiner = "&" if "?" in target else "?"
        target = f"{target}{joiner}{urlencode(params)}"
    return see_other(target)


__all__ = ["back_to", "render", "safe_next", "see_other", "templates"]
