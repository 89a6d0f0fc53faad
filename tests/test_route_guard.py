import pytest

from charities.auth.guard import GuardConfig, GuardDecision, GuardState, RouteGuard, evaluate
from charities.auth.navigation import Navigator
from charities.auth.provider import AuthProvider
from charities.backend.types import AuthUser

USER = AuthUser(id="user-1", email="jane@example.com")


def test_evaluate_pending_while_loading():
    assert evaluate(None, True, GuardConfig()) == GuardDecision(GuardState.PENDING)
    assert evaluate(USER, True, GuardConfig(require_auth=False)).state is GuardState.PENDING


def test_evaluate_protected_page():
    config = GuardConfig(require_auth=True, redirect_to="/auth")
    assert evaluate(None, False, config) == GuardDecision(GuardState.REDIRECTING, "/auth")
    assert evaluate(USER, False, config) == GuardDecision(GuardState.ALLOWED)


def test_evaluate_public_only_page():
    config = GuardConfig(require_auth=False, landing_route="/feed")
    assert evaluate(USER, False, config) == GuardDecision(GuardState.REDIRECTING, "/feed")
    assert evaluate(None, False, config) == GuardDecision(GuardState.ALLOWED)


@pytest.mark.asyncio
async def test_guard_follows_provider_state(fake_backend, make_backend):
    fake_backend.add_account("jane@example.com", "secret1")
    navigator = Navigator()
    guard = RouteGuard(GuardConfig(require_auth=True, redirect_to="/auth"), navigator)

    async with AuthProvider(await make_backend(), navigator) as auth:
        decision = guard.attach(auth)
        assert decision.state is GuardState.REDIRECTING
        assert guard.renders_content is False
        assert navigator.history == ["/auth"]

        await auth.sign_in("jane@example.com", "secret1")
        assert guard.decision.state is GuardState.ALLOWED
        assert guard.renders_content is True

        await auth.sign_out()
        assert guard.decision.state is GuardState.REDIRECTING

    # The guard reacts to the state write; the provider then pushes the public route.
    assert navigator.history == ["/auth", "/auth", "/"]


@pytest.mark.asyncio
async def test_redirect_is_pushed_once_per_transition(make_backend):
    navigator = Navigator()
    guard = RouteGuard(GuardConfig(require_auth=True, redirect_to="/auth"), navigator)

    async with AuthProvider(await make_backend(), navigator) as auth:
        guard.attach(auth)
        auth._commit(profile_warning="unrelated change")
        auth._commit(profile_warning=None)

    assert navigator.history == ["/auth"]


@pytest.mark.asyncio
async def test_detached_guard_ignores_changes(fake_backend, make_backend):
    fake_backend.add_account("jane@example.com", "secret1")
    guard = RouteGuard(GuardConfig(), Navigator())

    async with AuthProvider(await make_backend(), Navigator()) as auth:
        guard.attach(auth)
        guard.detach()
        await auth.sign_in("jane@example.com", "secret1")

    assert guard.decision.state is GuardState.REDIRECTING
