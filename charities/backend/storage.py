"""Session persistence adapter.

The auth client never touches the browser-side store directly. It goes through
``SessionStore``, which plugs into the auth library as its storage and turns
every failure of the underlying mapping (cookie too large, store disabled,
corrupted payload) into a logged no-op. A broken store therefore degrades to
"not signed in" instead of taking the page down.

Values arrive already serialised: the auth library hands over the session as a
JSON string and the PKCE verifier as a plain string.
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping

from supabase_auth import AsyncSupportedStorage

from ..core.errors import StorageError

logger = logging.getLogger(__name__)


class SessionStore(AsyncSupportedStorage):
    def __init__(self, backing: MutableMapping[str, Any]) -> None:
        self._backing = backing

    # -- raw operations: raise StorageError, never anything else

    def _read(self, key: str) -> Any:
        try:
            return self._backing.get(key)
        except Exception as exc:
            raise StorageError(f"read failed for {key!r}") from exc

    def _write(self, key: str, raw: str) -> None:
        try:
            self._backing[key] = raw
        except Exception as exc:
            raise StorageError(f"write failed for {key!r}") from exc

    def _delete(self, key: str) -> None:
        try:
            self._backing.pop(key, None)
        except Exception as exc:
            raise StorageError(f"remove failed for {key!r}") from exc

    # -- public contract: failures are absorbed here

    async def get_item(self, key: str) -> str | None:
        try:
            raw = self._read(key)
        except StorageError as exc:
            logger.error("Error reading auth data: %s", exc, exc_info=exc.__cause__)
            return None
        if raw is None:
            return None
        if not isinstance(raw, str):
            logger.warning("Discarding unreadable auth data under %s", key)
            return None
        return raw

    async def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            logger.error("Error storing auth data: value for %s is not a string", key)
            return
        try:
            self._write(key, value)
        except StorageError as exc:
            logger.error("Error storing auth data: %s", exc, exc_info=exc.__cause__)

    async def remove_item(self, key: str) -> None:
        try:
            self._delete(key)
        except StorageError as exc:
            logger.error("Error removing auth data: %s", exc, exc_info=exc.__cause__)


__all__ = ["SessionStore"]
