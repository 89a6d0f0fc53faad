"""Sign-in / sign-up pages and the guard as seen through HTTP."""

from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from charities import create_app
from charities.core.config import AppSettings
from charities.core.errors import GuardPending


@pytest.fixture()
def app(fake_backend):
    return create_app(AppSettings(), transport=fake_backend.transport())


@pytest.fixture()
def client(app):
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


def _sign_in(client, fake_backend, email="jane@example.com", password="secret1"):
    if email not in fake_backend.accounts:
        fake_backend.add_account(email, password, full_name="Jane Doe")
    response = client.post("/auth/signin", data={"email": email, "password": password})
    assert response.status_code == 303
    return response


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers["X-Request-ID"]
    assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]


def test_landing_page_is_public(client, fake_backend):
    fake_backend.tables["posts"].append(
        {
            "id": "p1",
            "content": "Food drive this Saturday",
            "like_count": 2,
            "created_at": "2024-05-02T10:00:00+00:00",
            "user": {"id": "user-9", "full_name": "Sam Lee"},
        }
    )
    response = client.get("/")
    assert response.status_code == 200
    assert "Food drive this Saturday" in response.text
    assert "Get Started" in response.text


def test_protected_pages_redirect_without_rendering(client):
    for path in ("/feed", "/search", "/map", "/profile"):
        response = client.get(path)
        assert response.status_code == 303
        assert response.headers["location"] == "/auth"
        assert response.content == b""


def test_sign_in_page_redirects_signed_in_visitors(client, fake_backend):
    assert client.get("/auth").status_code == 200
    _sign_in(client, fake_backend)

    response = client.get("/auth")
    assert response.status_code == 303
    assert response.headers["location"] == "/feed"
    assert response.content == b""


def test_short_password_is_rejected_before_any_network_call(client, fake_backend):
    response = client.post(
        "/auth/signup", data={"email": "new@user.com", "password": "ab", "full_name": "Jane Doe"}
    )
    assert response.status_code == 400
    assert "Password must be at least 6 characters long" in response.text
    assert fake_backend.requests == []


def test_sign_up_creates_profile_then_duplicate_is_reported(client, fake_backend):
    form = {"email": "new@user.com", "password": "abcdef", "full_name": "Jane Doe"}
    response = client.post("/auth/signup", data=form)
    assert response.status_code == 303
    assert response.headers["location"] == "/feed"
    assert [row["full_name"] for row in fake_backend.rows("users")] == ["Jane Doe"]

    client.post("/auth/signout")
    response = client.post("/auth/signup", data=form)
    assert response.status_code == 400
    assert "User already registered" in response.text
    assert len(fake_backend.rows("users")) == 1


def test_sign_up_waiting_for_confirmation_shows_notice(client, fake_backend):
    fake_backend.auto_confirm = False
    response = client.post(
        "/auth/signup", data={"email": "new@user.com", "password": "abcdef", "full_name": "Jane Doe"}
    )
    assert response.status_code == 200
    assert "Please check your email to verify your account" in response.text


def test_wrong_password_renders_inline_error(client, fake_backend):
    fake_backend.add_account("jane@example.com", "secret1")
    response = client.post("/auth/signin", data={"email": "Jane@Example.com ", "password": "wrong"})
    assert response.status_code == 400
    assert "Invalid login credentials" in response.text
    assert 'value="jane@example.com"' in response.text


def test_sign_in_and_sign_out_round_trip(client, fake_backend):
    response = _sign_in(client, fake_backend)
    assert response.headers["location"] == "/feed"
    assert client.get("/feed").status_code == 200

    response = client.post("/auth/signout")
    assert response.status_code == 303
    assert response.headers["location"] == "/"
    assert client.get("/feed").headers["location"] == "/auth"


def test_oauth_redirect_and_callback(client, fake_backend):
    fake_backend.add_account("sam.lee@example.com", "unused")
    response = client.post("/auth/oauth/google")
    assert response.status_code == 303
    location = urlsplit(response.headers["location"])
    assert location.netloc == "backend.test"
    assert location.path == "/auth/v1/authorize"
    assert parse_qs(location.query)["redirect_to"] == ["http://localhost:8000/auth/callback"]

    code = fake_backend.issue_code("sam.lee@example.com")
    response = client.get(f"/auth/callback?code={code}")
    assert response.status_code == 303
    assert response.headers["location"] == "/feed"
    assert [row["full_name"] for row in fake_backend.rows("users")] == ["sam.lee"]


def test_oauth_callback_error_goes_back_to_sign_in(client):
    response = client.get("/auth/callback?error=access_denied&error_description=User+cancelled")
    assert response.status_code == 303
    location = urlsplit(response.headers["location"])
    assert location.path == "/auth"
    assert parse_qs(location.query)["error"] == ["User cancelled"]


def test_unknown_oauth_provider_is_reported_inline(client, fake_backend):
    response = client.post("/auth/oauth/myspace")
    assert response.status_code == 400
    assert "not available" in response.text
    assert fake_backend.requests == []


def test_pending_guard_renders_loading_placeholder(app):
    async def still_loading():
        raise GuardPending()

    app.add_api_route("/still-loading", still_loading)
    with TestClient(app) as test_client:
        response = test_client.get("/still-loading")
    assert response.status_code == 200
    assert "Loading..." in response.text


def test_guard_routes_follow_the_app_settings(fake_backend):
    settings = AppSettings(SIGN_IN_ROUTE="/login", AUTH_LANDING_ROUTE="/map")
    app = create_app(settings, transport=fake_backend.transport())
    with TestClient(app, follow_redirects=False) as test_client:
        assert test_client.get("/feed").headers["location"] == "/login"

        _sign_in(test_client, fake_backend)
        response = test_client.get("/auth")
        assert response.status_code == 303
        assert response.headers["location"] == "/map"
