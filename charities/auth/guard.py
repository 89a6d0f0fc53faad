"""Route guard: decide whether a page may render for the current auth state.

``evaluate`` is the pure decision. ``RouteGuard`` keeps that decision current
for a mounted ``AuthProvider`` so that, for example, signing out while a
protected page is open immediately turns into a redirect.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..backend.types import AuthUser
from .navigation import Navigator
from .provider import AuthProvider


class GuardState(str, Enum):
    PENDING = "pending"
    ALLOWED = "allowed"
    REDIRECTING = "redirecting"


@dataclass(frozen=True)
class GuardConfig:
    require_auth: bool = True
    redirect_to: str = "/auth"
    # Where signed-in visitors of public-only pages (the sign-in form) are sent.
    landing_route: str = "/feed"


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    target: str | None = None


def evaluate(user: AuthUser | None, is_loading: bool, config: GuardConfig) -> GuardDecision:
    if is_loading:
        return GuardDecision(GuardState.PENDING)
    if config.require_auth and user is None:
        return GuardDecision(GuardState.REDIRECTING, config.redirect_to)
    if not config.require_auth and user is not None:
        return GuardDecision(GuardState.REDIRECTING, config.landing_route)
    return GuardDecision(GuardState.ALLOWED)


class RouteGuard:
    def __init__(self, config: GuardConfig, navigator: Navigator) -> None:
        self.config = config
        self.navigator = navigator
        self.decision = GuardDecision(GuardState.PENDING)
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def renders_content(self) -> bool:
        return self.decision.state is GuardState.ALLOWED

    def attach(self, provider: AuthProvider) -> GuardDecision:
        self.detach()
        self._unsubscribe = provider.subscribe(self._reevaluate)
        self._reevaluate(provider)
        return self.decision

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _reevaluate(self, provider: AuthProvider) -> None:
        decision = evaluate(provider.current_user, provider.is_loading, self.config)
        previous = self.decision
        self.decision = decision
        if decision.state is GuardState.REDIRECTING and decision != previous:
            self.navigator.push(decision.target)


__all__ = ["GuardConfig", "GuardDecision", "GuardState", "RouteGuard", "evaluate"]
