"""Beginner-friendly overview for this module.

WHAT: The signed-in visitor's own profile: details form, avatar upload,
their posts and the followers / following lists.
WHEN: ``GET /profile`` renders the page; the POST handlers below are the
form actions on it and always redirect back with a notice or error.
HOW: Data access lives in ``services.profiles`` / ``services.follows``; this
module only translates form fields and maps failures to messages.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse

from ..auth.provider import AuthProvider
from ..core.errors import AvatarValidationError, QueryError
from ..deps.auth import app_settings, require_session
from ..services.follows import filter_by_name, list_connections, suggest_users, toggle_user_follow
from ..services.posts import list_user_posts
from ..services.profiles import get_profile, remove_avatar, update_profile, upload_avatar
from .common import back_to, render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/profile", response_class=HTMLResponse)
async def profile_page(
    request: Request,
    people: str = "",
    who: str = "",
    auth: AuthProvider = Depends(require_session),
):
    user = auth.current_user
    context = {
        "profile": None,
        "posts": [],
        "people": [],
        "people_mode": people if people in ("followers", "following") else "",
        "who": who,
        "suggested_users": [],
        "load_error": "",
    }
    try:
        context["profile"] = await get_profile(auth.backend, user.id)
        context["posts"] = await list_user_posts(auth.backend, user.id)
        context["suggested_users"] = await suggest_users(auth.backend, user.id)
        if context["people_mode"]:
            connections = await list_connections(auth.backend, user.id, context["people_mode"], user.id)
            context["people"] = filter_by_name(connections, who)
    except QueryError as exc:
        logger.error("Error fetching profile: %s", exc.message, extra={"extra_data": {"user_id": user.id}})
        context["load_error"] = "Could not load profile"
    return render(request, auth, "profile.html", context)


@router.post("/profile")
async def save_profile(
    full_name: str = Form(""),
    bio: str = Form(""),
    location: str = Form(""),
    auth: AuthProvider = Depends(require_session),
):
    try:
        await update_profile(auth.backend, auth.current_user.id, full_name=full_name, bio=bio, location=location)
    except QueryError as exc:
        logger.error("Error updating profile: %s", exc.message)
        return back_to(None, "/profile", error=f"Error updating profile: {exc.message}")
    return back_to(None, "/profile", notice="Profile updated successfully!")


@router.post("/profile/avatar")
async def change_avatar(
    request: Request,
    avatar: UploadFile = File(...),
    auth: AuthProvider = Depends(require_session),
):
    config = app_settings(request)
    # One byte past the limit is enough to reject an oversized upload.
    data = await avatar.read(config.AVATAR_MAX_BYTES + 1)
    try:
        await upload_avatar(
            auth.backend,
            auth.current_user.id,
            content_type=avatar.content_type,
            data=data,
            bucket=config.AVATAR_BUCKET,
            max_bytes=config.AVATAR_MAX_BYTES,
        )
    except AvatarValidationError as exc:
        return back_to(None, "/profile", error=str(exc))
    except QueryError as exc:
        logger.error("Error uploading avatar: %s", exc.message)
        return back_to(None, "/profile", error=exc.message or "Failed to upload profile picture")
    return back_to(None, "/profile", notice="Profile picture updated successfully!")


@router.post("/profile/avatar/remove")
async def drop_avatar(auth: AuthProvider = Depends(require_session)):
    try:
        await remove_avatar(auth.backend, auth.current_user.id)
    except QueryError as exc:
        logger.error("Error removing avatar: %s", exc.message)
        return back_to(None, "/profile", error=exc.message or "Failed to remove profile picture")
    return back_to(None, "/profile", notice="Profile picture removed successfully!")


@router.post("/profile/users/{target_id}/follow")
async def follow_user(
    target_id: str,
    following: bool = Form(False),
    next: str = Form("/profile"),
    auth: AuthProvider = Depends(require_session),
):
    try:
        await toggle_user_follow(auth.backend, auth.current_user.id, target_id, following)
    except ValueError as exc:
        return back_to(next, "/profile", error=str(exc))
    except QueryError as exc:
        logger.error("Error toggling follow: %s", exc.message, extra={"extra_data": {"target_id": target_id}})
        return back_to(next, "/profile", error="Could not update follow")
    return back_to(next, "/profile")
