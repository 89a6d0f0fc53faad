"""Charity listings for the feed sidebar, search and map pages.

Lists are fetched once per page and narrowed locally, the same way the search
form narrows them as the visitor types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from postgrest.types import ReturnMethod

from ..backend.client import BackendClient, execute

CATEGORIES = (
    "Health",
    "Education",
    "Environment",
    "Animals",
    "Community",
    "Arts & Culture",
    "Human Services",
    "International",
    "Religion",
)
ALL_CATEGORIES = "All Categories"

SEARCH_COLUMNS = "*, city:canadian_cities(name, province), user_following:follows!left(user_id)"
SUGGESTED_COLUMNS = "*, user_following:follows!left(user_id)"


@dataclass(frozen=True)
class CharityFilters:
    query: str = ""
    city: str = ""
    category: str = ""
    # The map also matches street addresses.
    match_address: bool = False

    @property
    def normalized_category(self) -> str:
        return "" if self.category == ALL_CATEGORIES else self.category

    def active(self) -> list[str]:
        labels = []
        if self.city:
            labels.append(f"City: {self.city}")
        if self.normalized_category:
            labels.append(f"Category: {self.normalized_category}")
        if self.query:
            labels.append(f"Search: {self.query}")
        return labels


def _contains(haystack: Any, needle: str) -> bool:
    return bool(haystack) and needle in str(haystack).lower()


def filter_charities(charities: list[dict[str, Any]], filters: CharityFilters) -> list[dict[str, Any]]:
    filtered = charities
    needle = filters.query.strip().lower()
    if needle:
        filtered = [
            charity
            for charity in filtered
            if _contains(charity.get("name"), needle)
            or _contains(charity.get("description"), needle)
            or (filters.match_address and _contains(charity.get("address"), needle))
        ]
    if filters.city:
        filtered = [charity for charity in filtered if (charity.get("city") or {}).get("name") == filters.city]
    category = filters.normalized_category
    if category:
        filtered = [charity for charity in filtered if charity.get("category") == category]
    return filtered


def mark_following(charities: list[dict[str, Any]], user_id: str | None) -> list[dict[str, Any]]:
    marked = []
    for charity in charities:
        follows = charity.get("user_following") or []
        marked.append({**charity, "user_following": any(f.get("user_id") == user_id for f in follows)})
    return marked


async def list_suggested_charities(backend: BackendClient, user_id: str, limit: int = 5) -> list[dict[str, Any]]:
    result = await execute(
        backend.table("charities").select(SUGGESTED_COLUMNS).order("follower_count", desc=True).limit(limit)
    )
    return mark_following(result.unwrap() or [], user_id)


async def list_charities(backend: BackendClient, user_id: str) -> list[dict[str, Any]]:
    result = await execute(backend.table("charities").select(SEARCH_COLUMNS).order("follower_count", desc=True))
    return mark_following(result.unwrap() or [], user_id)


async def list_mapped_charities(backend: BackendClient) -> list[dict[str, Any]]:
    result = await execute(
        backend.table("charities").select("*").not_.is_("latitude", None).not_.is_("longitude", None)
    )
    return result.unwrap() or []


async def list_cities(backend: BackendClient) -> list[dict[str, Any]]:
    result = await execute(backend.table("canadian_cities").select("*").order("name"))
    return result.unwrap() or []


async def toggle_charity_follow(
    backend: BackendClient, user_id: str, charity_id: str, currently_following: bool
) -> bool:
    if currently_following:
        query = backend.table("follows").delete().eq("user_id", user_id).eq("charity_id", charity_id)
    else:
        query = backend.table("follows").insert(
            {"user_id": user_id, "charity_id": charity_id}, returning=ReturnMethod.minimal
        )
    (await execute(query)).unwrap()
    return not currently_following


__all__ = [
    "ALL_CATEGORIES",
    "CATEGORIES",
    "CharityFilters",
    "filter_charities",
    "list_charities",
    "list_cities",
    "list_mapped_charities",
    "list_suggested_charities",
    "mark_following",
    "toggle_charity_follow",
]
