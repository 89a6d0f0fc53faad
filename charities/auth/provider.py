"""Auth state container.

``AuthProvider`` holds ``current_user`` and ``is_loading`` for one mounted
application root. It is constructed explicitly and handed to whatever needs
it (route guard, page handlers); nothing is stored at module level.

Lifecycle::

    async with AuthProvider(backend, navigator) as auth:
        ...  # mounted: listener registered, initial session loaded
    # unmounted: listener removed, late results are dropped

Both the initial session request and the backend change listener may land in
either order, possibly after the root was unmounted. Every write therefore
goes through ``_commit`` which checks the liveness flag first. The listener is
called synchronously by the auth library, so the profile bootstrap it starts
runs as a task that the actions and the initial load wait for.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..backend.auth import Subscription
from ..backend.client import BackendClient
from ..backend.types import AuthChangeEvent, AuthUser, Err, Session, SignUpResult
from ..core.errors import AuthError, ProfileBootstrapError
from .navigation import Navigator
from .profile import ensure_user_profile

logger = logging.getLogger(__name__)

StateListener = Callable[["AuthProvider"], None]


class AuthProvider:
    def __init__(
        self,
        backend: BackendClient,
        navigator: Navigator,
        *,
        public_route: str = "/",
        oauth_redirect_url: str = "/auth/callback",
    ) -> None:
        self._backend = backend
        self._navigator = navigator
        self._public_route = public_route
        self._oauth_redirect_url = oauth_redirect_url
        self._alive = False
        self._subscription: Subscription | None = None
        self._listeners: list[StateListener] = []
        self._pending: set[asyncio.Task] = set()

        self.current_user: AuthUser | None = None
        self.is_loading = True
        self.session_error: AuthError | None = None
        self.profile_warning: str | None = None

    @property
    def backend(self) -> BackendClient:
        return self._backend

    # ---------- lifecycle

    @property
    def mounted(self) -> bool:
        return self._alive

    async def mount(self) -> None:
        if self._alive:
            return
        self._alive = True
        # Listener first so nothing emitted while the session loads is missed.
        self._subscription = self._backend.auth.on_auth_state_change(self._handle_auth_change)
        await self._load_initial_session()

    async def unmount(self) -> None:
        self._alive = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._listeners.clear()

    async def __aenter__(self) -> "AuthProvider":
        await self.mount()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.unmount()

    # ---------- state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, **changes: Any) -> bool:
        if not self._alive:
            logger.debug("Dropping auth state update after unmount: %s", sorted(changes))
            return False
        for name, value in changes.items():
            setattr(self, name, value)
        for listener in list(self._listeners):
            listener(self)
        return True

    async def _load_initial_session(self) -> None:
        result = await self._backend.auth.get_session()
        if isinstance(result, Err):
            logger.error("Error getting session: %s", result.error.message)
            self._commit(current_user=None, is_loading=False, session_error=result.error)
            return
        session: Session | None = result.value
        user = session.user if session else None
        if self._commit(current_user=user, is_loading=False) and user is not None:
            # A restored session may predate a failed bootstrap.
            await self._bootstrap_profile(user)
        await self._settle()

    def _handle_auth_change(self, event: AuthChangeEvent, session: Session | None) -> None:
        user = session.user if session else None
        logger.info(
            "Auth state changed: %s",
            event.value,
            extra={"extra_data": {"event": event.value, "user_id": user.id if user else None}},
        )
        if not self._commit(current_user=user, is_loading=False):
            return
        if event is AuthChangeEvent.SIGNED_IN and user is not None:
            task = asyncio.get_running_loop().create_task(self._bootstrap_profile(user))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        elif event is AuthChangeEvent.SIGNED_OUT:
            self._navigator.push(self._public_route)

    async def _bootstrap_profile(self, user: AuthUser) -> None:
        try:
            await ensure_user_profile(self._backend, user)
        except ProfileBootstrapError as exc:
            logger.warning("Error creating user profile: %s", exc, extra={"extra_data": {"user_id": user.id}})
            self._commit(profile_warning=str(exc))

    async def _settle(self) -> None:
        """Wait for profile bootstraps started by change notifications."""

        while self._pending:
            running = list(self._pending)
            self._pending.difference_update(running)
            await asyncio.gather(*running)

    # ---------- actions

    async def sign_in(self, email: str, password: str) -> None:
        result = await self._backend.auth.sign_in_with_password(email, password)
        await self._settle()
        result.unwrap()

    async def sign_up(self, email: str, password: str, full_name: str) -> SignUpResult:
        result = await self._backend.auth.sign_up(email, password, data={"full_name": full_name})
        await self._settle()
        return result.unwrap()

    async def sign_in_with_oauth(self, provider: str = "google") -> str:
        """Return the provider URL to send the browser to; the session arrives later."""

        result = await self._backend.auth.sign_in_with_oauth(provider, self._oauth_redirect_url)
        return result.unwrap()

    async def exchange_code_for_session(self, code: str) -> None:
        result = await self._backend.auth.exchange_code_for_session(code)
        await self._settle()
        result.unwrap()

    async def sign_out(self) -> None:
        (await self._backend.auth.sign_out()).unwrap()


__all__ = ["AuthProvider", "StateListener"]
