from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..auth.provider import AuthProvider
from ..core.errors import QueryError
from ..deps.auth import get_auth
from ..services.posts import list_recent_posts
from .common import render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def landing(request: Request, auth: AuthProvider = Depends(get_auth)):
    """Public landing page with the latest community posts."""

    try:
        posts = await list_recent_posts(auth.backend)
    except QueryError as exc:
        logger.warning("Could not load recent posts: %s", exc.message)
        posts = []
    return render(request, auth, "index.html", {"posts": posts})
