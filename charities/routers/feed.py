"""Signed-in home: the post feed, the composer and the charity/people sidebar."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse

from ..auth.provider import AuthProvider
from ..core.errors import QueryError
from ..deps.auth import require_session
from ..services.charities import list_suggested_charities, toggle_charity_follow
from ..services.follows import suggest_users
from ..services.posts import create_post, list_feed, toggle_like
from .common import back_to, render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/feed", response_class=HTMLResponse)
async def feed_page(request: Request, auth: AuthProvider = Depends(require_session)):
    user = auth.current_user
    context = {"posts": [], "suggested_charities": [], "suggested_users": [], "load_error": ""}
    try:
        context["posts"] = await list_feed(auth.backend, user.id)
    except QueryError as exc:
        logger.error("Error fetching posts: %s", exc.message)
        context["load_error"] = "Could not load posts"
    try:
        context["suggested_charities"] = await list_suggested_charities(auth.backend, user.id)
        context["suggested_users"] = await suggest_users(auth.backend, user.id)
    except QueryError as exc:
        logger.error("Error fetching suggestions: %s", exc.message)
    return render(request, auth, "feed.html", context)


@router.post("/feed/posts")
async def submit_post(
    content: str = Form(""),
    title: str = Form(""),
    image_url: str = Form(""),
    auth: AuthProvider = Depends(require_session),
):
    try:
        await create_post(auth.backend, auth.current_user.id, content=content, title=title, image_url=image_url)
    except ValueError as exc:
        return back_to(None, "/feed", error=str(exc))
    except QueryError as exc:
        logger.error("Error creating post: %s", exc.message)
        return back_to(None, "/feed", error="Failed to create post. Please try again.")
    return back_to(None, "/feed", notice="Post shared")


@router.post("/feed/posts/{post_id}/like")
async def like_post(
    post_id: str,
    liked: bool = Form(False),
    next: str = Form("/feed"),
    auth: AuthProvider = Depends(require_session),
):
    try:
        await toggle_like(auth.backend, auth.current_user.id, post_id, liked)
    except QueryError as exc:
        logger.error("Error toggling like: %s", exc.message, extra={"extra_data": {"post_id": post_id}})
        return back_to(next, "/feed", error="Could not update like")
    return back_to(next, "/feed")


@router.post("/feed/charities/{charity_id}/follow")
async def follow_charity(
    charity_id: str,
    following: bool = Form(False),
    next: str = Form("/feed"),
    auth: AuthProvider = Depends(require_session),
):
    try:
        await toggle_charity_follow(auth.backend, auth.current_user.id, charity_id, following)
    except QueryError as exc:
        logger.error("Error toggling follow: %s", exc.message, extra={"extra_data": {"charity_id": charity_id}})
        return back_to(next, "/feed", error="Could not update follow")
    return back_to(next, "/feed")
