"""Make sure every signed-in account has its ``users`` profile row."""

from __future__ import annotations

import logging

from postgrest.types import ReturnMethod

from ..backend.client import BackendClient, execute
from ..backend.types import AuthUser, Err
from ..core.errors import ProfileBootstrapError

logger = logging.getLogger(__name__)

ANONYMOUS_NAME = "Anonymous"


def profile_display_name(user: AuthUser) -> str:
    """Metadata name, then the email's local part, then a placeholder."""

    if user.full_name:
        return user.full_name
    local_part = (user.email or "").split("@")[0]
    return local_part or ANONYMOUS_NAME


async def ensure_user_profile(backend: BackendClient, user: AuthUser) -> bool:
    """Create the profile row for ``user`` if it does not exist yet.

    Returns ``True`` when this call inserted the row. Two tabs finishing sign-in
    at the same moment can both miss the lookup; the loser's insert hits the
    primary key and is treated as success. Any other failure raises
    ``ProfileBootstrapError``.
    """

    lookup = await execute(backend.table("users").select("id").eq("id", user.id).maybe_single())
    if isinstance(lookup, Err):
        # A failed lookup is not fatal; the insert below settles it either way.
        logger.info("Profile lookup for %s failed: %s", user.id, lookup.error.message)
    elif lookup.value:
        return False

    row = {
        "id": user.id,
        "email": user.email,
        "full_name": profile_display_name(user),
        "avatar_url": user.avatar_url,
    }
    inserted = await execute(backend.table("users").insert(row, returning=ReturnMethod.minimal))
    if isinstance(inserted, Err):
        if inserted.error.is_unique_violation:
            logger.info("Profile for %s was created concurrently", user.id)
            return False
        raise ProfileBootstrapError(f"Could not create profile: {inserted.error.message}") from inserted.error
    logger.info("Created profile", extra={"extra_data": {"event": "PROFILE_CREATED", "user_id": user.id}})
    return True


__all__ = ["ANONYMOUS_NAME", "ensure_user_profile", "profile_display_name"]
