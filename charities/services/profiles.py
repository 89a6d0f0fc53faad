from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from postgrest.types import ReturnMethod

from ..backend.client import BackendClient, execute
from ..core.errors import AvatarValidationError

logger = logging.getLogger(__name__)

ALLOWED_AVATAR_TYPES = {"image/png", "image/jpeg", "image/jpg"}
_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/jpg": "jpg"}


def _utcnow() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


async def get_profile(backend: BackendClient, user_id: str) -> dict[str, Any] | None:
    result = await execute(backend.table("users").select("*").eq("id", user_id).maybe_single())
    return result.unwrap()


async def update_profile(
    backend: BackendClient,
    user_id: str,
    *,
    full_name: str,
    bio: str,
    location: str,
) -> None:
    values = {
        "full_name": full_name.strip(),
        "bio": bio.strip(),
        "location": location.strip(),
        "updated_at": _utcnow(),
    }
    query = backend.table("users").update(values, returning=ReturnMethod.minimal).eq("id", user_id)
    (await execute(query)).unwrap()


def validate_avatar(content_type: str | None, size: int, max_bytes: int) -> None:
    if (content_type or "").lower() not in ALLOWED_AVATAR_TYPES:
        raise AvatarValidationError("Please select a PNG or JPEG image file")
    if size > max_bytes:
        raise AvatarValidationError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")


def avatar_object_path(user_id: str, content_type: str, now_ms: int | None = None) -> str:
    """``avatars/<user>-<millis>.<ext>``; the extension follows the validated content type."""

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"avatars/{user_id}-{stamp}.{_EXTENSIONS[content_type.lower()]}"


async def upload_avatar(
    backend: BackendClient,
    user_id: str,
    *,
    content_type: str | None,
    data: bytes,
    bucket: str,
    max_bytes: int,
) -> str:
    """Validate, upload and attach a new profile picture; returns its public URL."""

    validate_avatar(content_type, len(data), max_bytes)
    content_type = content_type.lower()
    path = avatar_object_path(user_id, content_type)
    public_url = (await backend.upload(bucket, path, data, content_type=content_type)).unwrap()
    values = {"avatar_url": public_url, "updated_at": _utcnow()}
    query = backend.table("users").update(values, returning=ReturnMethod.minimal).eq("id", user_id)
    (await execute(query)).unwrap()
    logger.info("Avatar updated", extra={"extra_data": {"user_id": user_id, "path": path}})
    return public_url


async def remove_avatar(backend: BackendClient, user_id: str) -> None:
    values = {"avatar_url": None, "updated_at": _utcnow()}
    query = backend.table("users").update(values, returning=ReturnMethod.minimal).eq("id", user_id)
    (await execute(query)).unwrap()


__all__ = [
    "ALLOWED_AVATAR_TYPES",
    "avatar_object_path",
    "get_profile",
    "remove_avatar",
    "update_profile",
    "upload_avatar",
    "validate_avatar",
]
