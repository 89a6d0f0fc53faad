"""The backend client handle: auth, data and storage behind one object.

The connection pool (``httpx.AsyncClient``) is long-lived and shared by the
whole process. A ``BackendClient`` binds it to one visitor's ``SessionStore``
through a ``supabase`` async client, so every data call runs with that
visitor's access token.

The library raises on failure; ``execute`` and ``BackendClient.upload`` turn
those exceptions into ``Err(QueryError)`` so callers branch on the result tag.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from postgrest import AsyncRequestBuilder
from supabase import (
    AsyncClient,
    AsyncClientOptions,
    ASupabaseAuthClient,
    PostgrestAPIError,
    StorageException,
)
from supabase.lib.client_options import DEFAULT_HEADERS

from ..core.config import AppSettings
from ..core.errors import QueryError
from .auth import AuthGateway
from .storage import SessionStore
from .types import Err, Ok, Result

logger = logging.getLogger(__name__)

NETWORK_CODE = "network"
_NETWORK_MESSAGE = "Cannot reach the server. Check your internet connection."


@dataclass
class BackendOptions(AsyncClientOptions):
    # Key the session is persisted under; the PKCE verifier uses "<key>-code-verifier".
    storage_key: str = "charities-next-to-me-auth"


class SupabaseClient(AsyncClient):
    """``AsyncClient`` that honours ``BackendOptions.storage_key``."""

    @staticmethod
    def _init_supabase_auth_client(
        auth_url: str,
        client_options: AsyncClientOptions,
        verify: bool = True,
        proxy: str | None = None,
    ) -> ASupabaseAuthClient:
        return ASupabaseAuthClient(
            url=auth_url,
            headers=client_options.headers,
            storage_key=getattr(client_options, "storage_key", None),
            auto_refresh_token=client_options.auto_refresh_token,
            persist_session=client_options.persist_session,
            storage=client_options.storage,
            http_client=client_options.httpx_client,
            flow_type=client_options.flow_type,
            verify=verify,
            proxy=proxy,
        )


def _status(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def query_error(exc: Exception) -> QueryError:
    """Map a data or storage failure onto ``QueryError``."""

    if isinstance(exc, httpx.HTTPError):
        return QueryError(_NETWORK_MESSAGE, code=NETWORK_CODE)
    if isinstance(exc, PostgrestAPIError):
        # Bodies PostgREST could not describe carry the HTTP status as their code.
        code = str(exc.code) if exc.code is not None else None
        return QueryError(exc.message or "Request failed", code=code, details=exc.details, hint=exc.hint)
    if isinstance(exc, StorageException):
        return QueryError(
            getattr(exc, "message", None) or str(exc),
            code=str(getattr(exc, "code", "") or "storage"),
            status=_status(getattr(exc, "status", None)),
        )
    return QueryError(str(exc) or exc.__class__.__name__)


async def execute(query: Any) -> Result[Any, QueryError]:
    """Run a PostgREST builder; ``maybe_single`` misses come back as ``Ok(None)``."""

    try:
        response = await query.execute()
    except (PostgrestAPIError, httpx.HTTPError) as exc:
        error = query_error(exc)
        logger.warning("Query failed: %s", error.message, extra={"extra_data": {"code": error.code}})
        return Err(error)
    return Ok(response.data if response is not None else None)


class BackendClient:
    def __init__(self, client: SupabaseClient, *, store: SessionStore, oauth_providers: list[str] | None = None) -> None:
        self._client = client
        self.store = store
        self.auth = AuthGateway(
            client.auth,
            store=store,
            storage_key=client.options.storage_key,
            oauth_providers=oauth_providers,
        )

    def table(self, name: str) -> AsyncRequestBuilder:
        return self._client.table(name)

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        *,
        content_type: str,
        cache_control: str = "3600",
        upsert: bool = False,
    ) -> Result[str, QueryError]:
        """Store ``data`` at ``path`` and return its public URL."""

        objects = self._client.storage.from_(bucket)
        try:
            await objects.upload(
                path,
                data,
                file_options={
                    "content-type": content_type,
                    "cache-control": cache_control,
                    "upsert": "true" if upsert else "false",
                },
            )
        except (StorageException, httpx.HTTPError) as exc:
            error = query_error(exc)
            logger.warning("Upload to %s failed: %s", bucket, error.message)
            return Err(error)
        return Ok(await objects.get_public_url(path))


def create_http_client(settings: AppSettings, **kwargs) -> httpx.AsyncClient:
    """Build the process-wide connection pool; closed by the app lifespan."""

    return httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT, **kwargs)


async def create_client(http: httpx.AsyncClient, store: SessionStore, settings: AppSettings) -> BackendClient:
    """Bind the shared pool to one visitor; a persisted session is restored on the way."""

    options = BackendOptions(
        storage=store,
        httpx_client=http,
        flow_type="pkce",
        # One client per visit: no background refresh timers outliving the request.
        auto_refresh_token=False,
        persist_session=True,
        headers={**DEFAULT_HEADERS, "x-application-name": settings.APP_CLIENT_NAME},
        storage_key=settings.AUTH_STORAGE_KEY,
    )
    client = await SupabaseClient.create(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options)
    return BackendClient(client, store=store, oauth_providers=settings.oauth_providers)


__all__ = [
    "BackendClient",
    "BackendOptions",
    "NETWORK_CODE",
    "SupabaseClient",
    "create_client",
    "create_http_client",
    "execute",
    "query_error",
]
