"""People-to-people follows (``user_follows``) for the profile page."""

from __future__ import annotations

from typing import Any, Literal

from postgrest.types import ReturnMethod

from ..backend.client import BackendClient, execute

USER_CARD_COLUMNS = "id, full_name, avatar_url, bio, follower_count, following_count"

Direction = Literal["followers", "following"]


async def following_ids(backend: BackendClient, user_id: str) -> set[str]:
    result = await execute(backend.table("user_follows").select("following_id").eq("follower_id", user_id))
    return {row["following_id"] for row in result.unwrap() or []}


async def suggest_users(backend: BackendClient, user_id: str, limit: int = 5) -> list[dict[str, Any]]:
    """Most-followed people the viewer does not follow yet, never the viewer."""

    excluded = await following_ids(backend, user_id)
    excluded.add(user_id)
    result = await execute(
        backend.table("users")
        .select(USER_CARD_COLUMNS)
        .not_.in_("id", sorted(excluded))
        .order("follower_count", desc=True)
        .limit(limit)
    )
    return result.unwrap() or []


async def list_connections(
    backend: BackendClient, user_id: str, direction: Direction, viewer_id: str
) -> list[dict[str, Any]]:
    if direction == "followers":
        columns = f"follower_id, follower:users!user_follows_follower_id_fkey({USER_CARD_COLUMNS})"
        query = backend.table("user_follows").select(columns).eq("following_id", user_id)
        key = "follower"
    else:
        columns = f"following_id, following:users!user_follows_following_id_fkey({USER_CARD_COLUMNS})"
        query = backend.table("user_follows").select(columns).eq("follower_id", user_id)
        key = "following"
    rows = (await execute(query)).unwrap() or []
    viewer_follows = await following_ids(backend, viewer_id)
    people = []
    for row in rows:
        person = row.get(key)
        if not person:
            continue
        people.append({**person, "is_following": person["id"] in viewer_follows})
    return people


def filter_by_name(people: list[dict[str, Any]], query: str) -> list[dict[str, Any]]:
    needle = query.strip().lower()
    if not needle:
        return people
    return [person for person in people if needle in (person.get("full_name") or "").lower()]


async def toggle_user_follow(
    backend: BackendClient, follower_id: str, target_id: str, currently_following: bool
) -> bool:
    if follower_id == target_id:
        raise ValueError("You cannot follow yourself")
    if currently_following:
        query = (
            backend.table("user_follows")
            .delete()
            .eq("follower_id", follower_id)
            .eq("following_id", target_id)
        )
    else:
        query = backend.table("user_follows").insert(
            {"follower_id": follower_id, "following_id": target_id}, returning=ReturnMethod.minimal
        )
    (await execute(query)).unwrap()
    return not currently_following


__all__ = [
    "filter_by_name",
    "following_ids",
    "list_connections",
    "suggest_users",
    "toggle_user_follow",
]
