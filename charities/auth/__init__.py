from __future__ import annotations

from .guard import GuardConfig, GuardDecision, GuardState, RouteGuard, evaluate
from .navigation import Navigator
from .profile import ensure_user_profile
from .provider import AuthProvider

__all__ = [
    "AuthProvider",
    "GuardConfig",
    "GuardDecision",
    "GuardState",
    "Navigator",
    "RouteGuard",
    "ensure_user_profile",
    "evaluate",
]
