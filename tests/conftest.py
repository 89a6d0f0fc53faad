"""Shared fixtures: an in-memory stand-in for the hosted backend.

``FakeBackend`` answers the auth, data and storage endpoints the app talks to
through ``httpx.MockTransport``, keeping accounts and table rows in plain
dicts so tests can assert on what was written.
"""

import asyncio
import itertools
import json
import os
import sys
import time
from email import policy
from email.parser import BytesParser
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_URL", "https://backend.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("APP_SECRET", "test-secret")

from charities.backend.client import create_client  # noqa: E402
from charities.backend.storage import SessionStore  # noqa: E402
from charities.core.config import AppSettings  # noqa: E402

BACKEND_URL = "https://backend.test"
STORAGE_KEY = "charities-next-to-me-auth"


def _render(value):
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _split_list(text):
    return [item.strip('"') for item in text.strip("()").split(",") if item]


def _uploaded_file(request):
    """Pull the file part out of a multipart upload."""

    head = f"Content-Type: {request.headers['content-type']}\r\n\r\n".encode()
    message = BytesParser(policy=policy.HTTP).parsebytes(head + request.content)
    for part in message.iter_parts():
        if part.get_filename():
            return part.get_payload(decode=True), part.get_content_type()
    return request.content, None


def _matches(row, column, expression):
    value = row.get(column)
    negate = expression.startswith("not.")
    if negate:
        expression = expression[4:]
    operator, _, operand = expression.partition(".")
    if operator == "eq":
        result = _render(value) == operand
    elif operator == "neq":
        result = _render(value) != operand
    elif operator == "is":
        result = _render(value) == operand
    elif operator == "in":
        result = _render(value) in _split_list(operand)
    else:
        raise AssertionError(f"unsupported filter {operator!r}")
    return not result if negate else result


class FakeBackend:
    def __init__(self):
        self.accounts = {}
        self.tables = {
            "users": [],
            "posts": [],
            "charities": [],
            "canadian_cities": [],
            "follows": [],
            "post_likes": [],
            "user_follows": [],
        }
        self.uploads = {}
        self.requests = []
        self.sent = []
        self.failures = {}
        self.auth_codes = {}
        self.refresh_tokens = {}
        self.auto_confirm = True
        self.session_ttl = 3600
        self.delays = {}
        self.offline = False
        self._ids = itertools.count(1)

    # ---------- helpers for tests

    def add_account(self, email, password, *, full_name=None, confirmed=True):
        user_id = f"user-{next(self._ids)}"
        metadata = {"full_name": full_name} if full_name else {}
        self.accounts[email] = {
            "id": user_id,
            "email": email,
            "password": password,
            "user_metadata": metadata,
            "confirmed": confirmed,
        }
        return user_id

    def issue_code(self, email):
        code = f"code-{next(self._ids)}"
        self.auth_codes[code] = email
        return code

    def fail(self, method, table, status=500, body=None):
        """Make the next calls to ``table`` answer with a PostgREST error."""

        error = {"message": "boom", "code": "XX000", "hint": None, "details": None}
        error.update(body or {})
        self.failures[(method, table)] = (status, error)

    def rows(self, table):
        return self.tables[table]

    def calls(self, prefix=""):
        return [(method, path) for method, path in self.requests if path.startswith(prefix)]

    # ---------- transport

    def transport(self):
        return httpx.MockTransport(self.handler)

    async def handler(self, request):
        await request.aread()
        path = unquote(request.url.path)
        self.requests.append((request.method, path))
        self.sent.append(request)
        if self.offline:
            raise httpx.ConnectError("backend unreachable", request=request)
        delay = self.delays.get((request.method, path))
        if delay:
            await asyncio.sleep(delay)
        if path.startswith("/auth/v1"):
            return self._auth(request, path[len("/auth/v1"):])
        if path.startswith("/rest/v1/"):
            return self._rest(request, path[len("/rest/v1/"):])
        if path.startswith("/storage/v1/object/"):
            failure = self.failures.get((request.method, "storage"))
            if failure is not None:
                status, error = failure
                return httpx.Response(
                    status, json={"message": error["message"], "error": "InternalError", "statusCode": str(status)}
                )
            key = path[len("/storage/v1/object/"):]
            content, content_type = _uploaded_file(request)
            self.uploads[key] = {"content": content, "content_type": content_type}
            return httpx.Response(200, json={"Key": key, "Id": f"obj-{next(self._ids)}"})
        return httpx.Response(404, json={"message": "not found"})

    def _user_json(self, account):
        return {
            "id": account["id"],
            "email": account["email"],
            "user_metadata": account["user_metadata"],
            "app_metadata": {"provider": "email"},
            "aud": "authenticated",
            "created_at": "2024-05-01T12:00:00+00:00",
            "identities": [
                {
                    "id": account["id"],
                    "identity_id": f"identity-{account['id']}",
                    "user_id": account["id"],
                    "identity_data": {"email": account["email"]},
                    "provider": "email",
                    "created_at": "2024-05-01T12:00:00+00:00",
                }
            ],
        }

    def _session_json(self, account):
        serial = next(self._ids)
        refresh_token = f"rt-{account['id']}-{serial}"
        self.refresh_tokens[refresh_token] = account["email"]
        return {
            "access_token": f"at-{account['id']}-{serial}",
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": self.session_ttl,
            "expires_at": int(time.time()) + self.session_ttl,
            "user": self._user_json(account),
        }

    def _auth(self, request, path):
        body = json.loads(request.content or b"{}")
        if path == "/token":
            grant = request.url.params.get("grant_type")
            if grant == "password":
                account = self.accounts.get(body.get("email"))
                if account is None or account["password"] != body.get("password"):
                    return httpx.Response(
                        400, json={"error_code": "invalid_credentials", "msg": "Invalid login credentials"}
                    )
                if not account["confirmed"]:
                    return httpx.Response(400, json={"error_code": "email_not_confirmed", "msg": "Email not confirmed"})
                return httpx.Response(200, json=self._session_json(account))
            if grant == "refresh_token":
                email = self.refresh_tokens.pop(body.get("refresh_token"), None)
                if email is None:
                    return httpx.Response(
                        400, json={"error_code": "refresh_token_not_found", "msg": "Invalid Refresh Token"}
                    )
                return httpx.Response(200, json=self._session_json(self.accounts[email]))
            if grant == "pkce":
                email = self.auth_codes.get(body.get("auth_code"))
                if email is None or not body.get("code_verifier"):
                    return httpx.Response(
                        404, json={"error_code": "flow_state_not_found", "msg": "invalid flow state"}
                    )
                return httpx.Response(200, json=self._session_json(self.accounts[email]))
        if path == "/signup":
            email = body["email"]
            if email in self.accounts:
                if self.auto_confirm:
                    return httpx.Response(
                        422, json={"error_code": "user_already_exists", "msg": "User already registered"}
                    )
                existing = self._user_json(self.accounts[email])
                return httpx.Response(200, json={**existing, "identities": []})
            if len(body.get("password", "")) < 6:
                return httpx.Response(
                    422, json={
                        "error_code": "weak_password",
                        "msg": "Password should be at least 6 characters",
                        "weak_password": {"reasons": ["length"]},
                    }
                )
            self.add_account(email, body["password"], confirmed=self.auto_confirm)
            account = self.accounts[email]
            account["user_metadata"] = dict(body.get("data") or {})
            if self.auto_confirm:
                return httpx.Response(200, json=self._session_json(account))
            return httpx.Response(200, json=self._user_json(account))
        if path == "/logout":
            return httpx.Response(204)
        return httpx.Response(404, json={"msg": "not found"})

    def _rest(self, request, table):
        failure = self.failures.get((request.method, table))
        if failure is not None:
            status, body = failure
            return httpx.Response(status, json=body)
        rows = self.tables.setdefault(table, [])
        reserved = ("select", "order", "limit", "columns")
        params = [(k, v) for k, v in request.url.params.multi_items() if k not in reserved]
        matched = [row for row in rows if all(_matches(row, k, v) for k, v in params)]
        if request.method == "GET":
            order = request.url.params.get("order")
            if order:
                column, _, direction = order.partition(".")
                matched = sorted(matched, key=lambda row: _render(row.get(column)), reverse=direction == "desc")
            limit = request.url.params.get("limit")
            if limit:
                matched = matched[: int(limit)]
            return httpx.Response(200, json=matched)
        if request.method == "POST":
            payload = json.loads(request.content)
            new_rows = payload if isinstance(payload, list) else [payload]
            for row in new_rows:
                if table == "users" and any(existing["id"] == row["id"] for existing in rows):
                    return httpx.Response(
                        409,
                        json={
                            "code": "23505",
                            "message": 'duplicate key value violates unique constraint "users_pkey"',
                            "details": f"Key (id)=({row['id']}) already exists.",
                            "hint": None,
                        },
                    )
            for row in new_rows:
                rows.append({"id": row.get("id") or f"row-{next(self._ids)}", **row})
            return self._written(request, new_rows, 201)
        if request.method == "PATCH":
            changes = json.loads(request.content)
            for row in matched:
                row.update(changes)
            return self._written(request, matched, 200)
        if request.method == "DELETE":
            self.tables[table] = [row for row in rows if row not in matched]
            return self._written(request, matched, 200)
        return httpx.Response(405)

    def _written(self, request, rows, status):
        if "return=representation" in request.headers.get("prefer", ""):
            return httpx.Response(status, json=rows)
        return httpx.Response(204)


class BrokenMapping(dict):
    """A session backing that fails every operation, like a disabled store."""

    def get(self, key, default=None):
        raise OSError("storage disabled")

    def __setitem__(self, key, value):
        raise OSError("storage disabled")

    def pop(self, key, default=None):
        raise OSError("storage disabled")


@pytest.fixture()
def fake_backend():
    return FakeBackend()


@pytest_asyncio.fixture()
async def http_client(fake_backend):
    async with httpx.AsyncClient(transport=fake_backend.transport()) as client:
        yield client


@pytest.fixture()
def backend_settings():
    return AppSettings(
        SUPABASE_URL=BACKEND_URL,
        SUPABASE_ANON_KEY="anon-key",
        OAUTH_PROVIDERS="google",
        AUTH_STORAGE_KEY=STORAGE_KEY,
    )


@pytest.fixture()
def make_backend(http_client, backend_settings):
    """Build a ``BackendClient`` over the fake; each call is a separate browser tab."""

    async def factory(backing=None):
        store = SessionStore(backing if backing is not None else {})
        return await create_client(http_client, store, backend_settings)

    return factory
