from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

from postgrest.types import ReturnMethod

from ..backend.client import BackendClient, execute

POST_WITH_AUTHOR = "*, user:users(id, full_name, avatar_url)"
FEED_COLUMNS = """
    *,
    charity:charities(id, name, logo_url, verified),
    user:users(id, full_name, avatar_url),
    user_liked:post_likes!left(user_id)
"""

_IMAGE_SUFFIX_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


def _utcnow() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


def is_valid_image_url(url: str) -> bool:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return False
    return bool(_IMAGE_SUFFIX_RE.search(url))


def mark_liked(posts: list[dict[str, Any]], user_id: str | None) -> list[dict[str, Any]]:
    """Collapse the joined ``post_likes`` rows into a per-viewer boolean."""

    marked = []
    for post in posts:
        likes = post.get("user_liked") or []
        marked.append({**post, "user_liked": any(like.get("user_id") == user_id for like in likes)})
    return marked


async def list_recent_posts(backend: BackendClient, limit: int | None = None) -> list[dict[str, Any]]:
    query = backend.table("posts").select(POST_WITH_AUTHOR).order("created_at", desc=True)
    if limit:
        query = query.limit(limit)
    return (await execute(query)).unwrap() or []


async def list_feed(backend: BackendClient, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
    result = await execute(backend.table("posts").select(FEED_COLUMNS).order("created_at", desc=True).limit(limit))
    return mark_liked(result.unwrap() or [], user_id)


async def list_user_posts(backend: BackendClient, user_id: str) -> list[dict[str, Any]]:
    result = await execute(
        backend.table("posts").select(POST_WITH_AUTHOR).eq("user_id", user_id).order("created_at", desc=True)
    )
    return result.unwrap() or []


async def create_post(
    backend: BackendClient,
    user_id: str,
    *,
    content: str,
    title: str | None = None,
    image_url: str | None = None,
) -> None:
    content = (content or "").strip()
    if not content:
        raise ValueError("Post content is required")
    image_url = (image_url or "").strip()
    if image_url and not is_valid_image_url(image_url):
        raise ValueError(
            "Please provide a valid image URL (must end with .jpg, .jpeg, .png, .gif, or .webp)"
        )
    row = {
        "user_id": user_id,
        "title": (title or "").strip() or None,
        "content": content,
        "image_url": image_url or None,
        "post_type": "user",
        "like_count": 0,
        "created_at": _utcnow(),
    }
    (await execute(backend.table("posts").insert(row, returning=ReturnMethod.minimal))).unwrap()


async def toggle_like(backend: BackendClient, user_id: str, post_id: str, currently_liked: bool) -> bool:
    """Flip the viewer's like on a post and return the new state."""

    if currently_liked:
        query = backend.table("post_likes").delete().eq("user_id", user_id).eq("post_id", post_id)
    else:
        query = backend.table("post_likes").insert(
            {"user_id": user_id, "post_id": post_id}, returning=ReturnMethod.minimal
        )
    (await execute(query)).unwrap()
    return not currently_liked


__all__ = [
    "create_post",
    "is_valid_image_url",
    "list_feed",
    "list_recent_posts",
    "list_user_posts",
    "mark_liked",
    "toggle_like",
]
