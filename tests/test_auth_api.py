"""Auth API tests — login, both credential channels, logout, registration.

Learn: each `make_client()` is a separate cookie jar, so "a fresh
request that only has the token" is simply a new client with an
Authorization header and no cookies.
"""

import uuid

import pytest

from inkwell.auth.sessions import SessionStore, SessionStoreUnavailable
from inkwell.config import settings
from inkwell.main import app

COOKIE = settings.session_cookie_name
DEFAULT_PASSWORD = "password_123"


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_establishes_session_and_token(client, make_user):
    """e@x.com / p → role, token, and a session that /me accepts."""
    await make_user(role="editor", email="e@x.com", username="e", password="p")

    r = await client.post("/api/auth/login", json={"email": "e@x.com", "password": "p"})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["role"] == "editor"
    assert body["user"]["id"] == body["user"]["_id"]
    assert body["token"]
    assert r.cookies.get(COOKIE)

    r = await client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "e@x.com"
    assert r.json()["source"] == "session"


@pytest.mark.asyncio
async def test_login_cookie_attributes(client, make_user):
    user = await make_user()
    r = await client.post(
        "/api/auth/login", json={"email": user.email, "password": DEFAULT_PASSWORD}
    )
    set_cookie = r.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert f"samesite={settings.session_cookie_samesite}" in set_cookie
    assert f"max-age={settings.session_ttl_seconds}" in set_cookie


@pytest.mark.asyncio
async def test_login_wrong_password(client, make_user):
    user = await make_user()
    r = await client.post(
        "/api/auth/login", json={"email": user.email, "password": "wrong_password"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"
    assert COOKIE not in r.cookies


@pytest.mark.asyncio
async def test_login_nonexistent_user(client):
    r = await client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "whatever"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_relogin_replaces_session(client, make_user, session_store):
    user = await make_user()
    creds = {"email": user.email, "password": DEFAULT_PASSWORD}

    r1 = await client.post("/api/auth/login", json=creds)
    first_sid = r1.cookies[COOKIE]
    r2 = await client.post("/api/auth/login", json=creds)
    second_sid = r2.cookies[COOKIE]

    assert first_sid != second_sid
    assert await session_store.get(first_sid) is None
    assert await session_store.get(second_sid) is not None


class DownStore(SessionStore):
    async def get(self, session_id):
        raise SessionStoreUnavailable("connection refused")

    async def set(self, session_id, snapshot, ttl_seconds):
        raise SessionStoreUnavailable("connection refused")

    async def destroy(self, session_id):
        raise SessionStoreUnavailable("connection refused")


@pytest.mark.asyncio
async def test_login_with_store_down_still_issues_token(make_client, make_user):
    """No session can be written: the token still comes back, no cookie is set."""
    user = await make_user(role="editor")
    app.state.session_store = DownStore()
    ac = make_client()

    r = await ac.post(
        "/api/auth/login", json={"email": user.email, "password": DEFAULT_PASSWORD}
    )
    assert r.status_code == 200
    token = r.json()["token"]
    assert token
    assert "set-cookie" not in r.headers

    r = await ac.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["source"] == "token"


@pytest.mark.asyncio
async def test_logout_with_store_down(make_client):
    app.state.session_store = DownStore()
    ac = make_client(cookies={COOKIE: "some-sid"})
    r = await ac.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json()["message"] == "Logout successful"


# ═══════════════════════════════════════════════════════════
# Token channel round trip
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_token_works_on_fresh_client(login_as, make_client):
    _, body = await login_as("admin")

    fresh = make_client()
    r = await fresh.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"}
    )
    assert r.status_code == 200
    me = r.json()
    assert me["source"] == "token"
    assert me["user"]["id"] == body["user"]["id"]
    assert me["user"]["role"] == body["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_session_wins_over_other_users_token(login_as):
    admin_client, admin_body = await login_as("admin")
    _, user_body = await login_as("user")

    r = await admin_client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {user_body['token']}"}
    )
    assert r.json()["user"]["id"] == admin_body["user"]["id"]
    assert r.json()["source"] == "session"


@pytest.mark.asyncio
async def test_invalid_token_does_not_block_valid_session(login_as):
    ac, body = await login_as("user")
    r = await ac.get("/api/auth/me", headers={"Authorization": "Bearer invalid_token_here"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == body["user"]["id"]


# ═══════════════════════════════════════════════════════════
# Logout — session dies, token survives
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_destroys_session_but_not_token(login_as, make_client):
    ac, body = await login_as("editor")
    old_sid = ac.cookies[COOKIE]

    r = await ac.post("/api/auth/logout")
    assert r.status_code == 200
    assert r.json()["message"] == "Logout successful"

    replay = make_client(cookies={COOKIE: old_sid})
    r = await replay.get("/api/auth/me")
    assert r.status_code == 401

    token_only = make_client()
    r = await token_only.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"}
    )
    assert r.status_code == 200
    assert r.json()["user"]["id"] == body["user"]["id"]


@pytest.mark.asyncio
async def test_logout_without_session(client):
    r = await client.post("/api/auth/logout")
    assert r.status_code == 200


# ═══════════════════════════════════════════════════════════
# /me without usable credentials
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_without_credentials(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Not authenticated"


@pytest.mark.asyncio
async def test_me_with_invalid_token_same_answer(client):
    r = await client.get("/api/auth/me", headers={"Authorization": "Bearer invalid"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Not authenticated"


@pytest.mark.asyncio
async def test_me_with_unknown_session(make_client):
    ac = make_client(cookies={COOKIE: "not-a-session"})
    r = await ac.get("/api/auth/me")
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


def _new_account(role: str = "user") -> dict:
    tag = uuid.uuid4().hex[:8]
    return {
        "username": f"new-{tag}",
        "email": f"new-{tag}@example.com",
        "password": "secure_password_123",
        "role": role,
    }


@pytest.mark.asyncio
async def test_register_requires_authentication(client):
    r = await client.post("/api/auth/register", json=_new_account())
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_register_rejects_editor(login_as):
    ac, _ = await login_as("editor")
    r = await ac.post("/api/auth/register", json=_new_account())
    assert r.status_code == 403
    assert r.json()["detail"] == "Admin access required"


@pytest.mark.asyncio
async def test_admin_registers_user(login_as, make_client):
    ac, _ = await login_as("admin")
    account = _new_account(role="editor")

    r = await ac.post("/api/auth/register", json=account)
    assert r.status_code == 201
    created = r.json()["user"]
    assert created["role"] == "editor"
    assert "passwordHash" not in created and "password_hash" not in created

    # New account can log in
    r = await make_client().post(
        "/api/auth/login",
        json={"email": account["email"], "password": account["password"]},
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_register_duplicate(login_as):
    ac, _ = await login_as("admin")
    account = _new_account()
    assert (await ac.post("/api/auth/register", json=account)).status_code == 201

    dup_username = {**_new_account(), "username": account["username"]}
    r = await ac.post("/api/auth/register", json=dup_username)
    assert r.status_code == 400
    assert r.json()["detail"] == "User already exists"


@pytest.mark.asyncio
async def test_register_short_password(login_as):
    ac, _ = await login_as("admin")
    r = await ac.post("/api/auth/register", json={**_new_account(), "password": "abc"})
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Invite registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_admin_register_wrong_invite(client):
    r = await client.post(
        "/api/auth/admin-register",
        json={**_new_account("admin"), "inviteToken": "guess"},
    )
    assert r.status_code == 403
    assert r.json()["detail"] == "Invalid invitation token"


@pytest.mark.asyncio
async def test_admin_register_with_invite(client):
    r = await client.post(
        "/api/auth/admin-register",
        json={**_new_account("admin"), "inviteToken": settings.admin_invite_token},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["role"] == "admin"
    assert body["token"]

    r = await client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["user"]["id"] == body["user"]["id"]


@pytest.mark.asyncio
async def test_admin_register_downgrades_plain_role_to_editor(client):
    r = await client.post(
        "/api/auth/admin-register",
        json={**_new_account("user"), "inviteToken": settings.admin_invite_token},
    )
    assert r.status_code == 201
    assert r.json()["user"]["role"] == "editor"
