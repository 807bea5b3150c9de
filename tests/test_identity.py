"""Identity resolver tests — precedence, fall-through, role gates.

Learn: these run the resolver directly (no HTTP) against a memory
session store and real signed tokens. Every failing channel must fall
through silently; only require_role turns absence into an error.
"""

import asyncio
import uuid

import pytest

from inkwell.auth.errors import AuthenticationRequired, AuthorizationDenied
from inkwell.auth.identity import (
    ADMIN,
    CONTENT,
    Identity,
    RequestCredentials,
    build_resolver,
    require_role,
)
from inkwell.auth.jwt import TokenError, create_access_token, verify_token
from inkwell.auth.sessions import (
    MemorySessionStore,
    SessionStore,
    SessionStoreUnavailable,
    new_session_id,
)


def _snapshot(role: str = "editor") -> dict:
    uid = str(uuid.uuid4())
    return {
        "id": uid,
        "username": f"u-{uid[:6]}",
        "email": f"{uid[:6]}@example.com",
        "role": role,
    }


def _token(snapshot: dict, **kwargs) -> str:
    return create_access_token(
        snapshot["id"], snapshot["username"], snapshot["email"], snapshot["role"],
        **kwargs,
    )


class BrokenStore(SessionStore):
    async def get(self, session_id):
        raise SessionStoreUnavailable("connection refused")

    async def set(self, session_id, snapshot, ttl_seconds):
        raise SessionStoreUnavailable("connection refused")

    async def destroy(self, session_id):
        raise SessionStoreUnavailable("connection refused")


class SlowStore(MemorySessionStore):
    async def get(self, session_id):
        await asyncio.sleep(1)
        return await super().get(session_id)


# ═══════════════════════════════════════════════════════════
# Session channel
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_session_snapshot_returned_unmodified():
    store = MemorySessionStore()
    snap = _snapshot()
    sid = new_session_id()
    await store.set(sid, snap, 60)

    identity = await build_resolver(store, timeout=1).resolve(
        RequestCredentials(session_id=sid)
    )
    assert identity is not None
    assert identity.snapshot() == snap
    assert identity.source == "session"


@pytest.mark.asyncio
async def test_unknown_session_is_absent():
    resolver = build_resolver(MemorySessionStore(), timeout=1)
    assert await resolver.resolve(RequestCredentials(session_id="nope")) is None


@pytest.mark.asyncio
async def test_session_wins_over_different_token():
    store = MemorySessionStore()
    session_user = _snapshot(role="admin")
    token_user = _snapshot(role="user")
    sid = new_session_id()
    await store.set(sid, session_user, 60)

    identity = await build_resolver(store, timeout=1).resolve(
        RequestCredentials(session_id=sid, authorization=f"Bearer {_token(token_user)}")
    )
    assert identity.snapshot() == session_user


# ═══════════════════════════════════════════════════════════
# Token channel
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_valid_token_without_session():
    snap = _snapshot()
    identity = await build_resolver(MemorySessionStore(), timeout=1).resolve(
        RequestCredentials(authorization=f"Bearer {_token(snap)}")
    )
    assert identity.snapshot() == snap
    assert identity.source == "token"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "authorization",
    [
        "Bearer not.a.jwt",
        "Bearer ",
        "Token abc",
        "bearer lowercase-scheme",
    ],
)
async def test_unusable_authorization_is_absent(authorization):
    resolver = build_resolver(MemorySessionStore(), timeout=1)
    assert await resolver.resolve(RequestCredentials(authorization=authorization)) is None


@pytest.mark.asyncio
async def test_wrong_secret_token_is_absent():
    token = _token(_snapshot(), secret="some-other-secret")
    resolver = build_resolver(MemorySessionStore(), timeout=1)
    assert await resolver.resolve(RequestCredentials(authorization=f"Bearer {token}")) is None


@pytest.mark.asyncio
async def test_expired_token_is_absent():
    token = _token(_snapshot(), expires_days=-1)
    resolver = build_resolver(MemorySessionStore(), timeout=1)
    assert await resolver.resolve(RequestCredentials(authorization=f"Bearer {token}")) is None


@pytest.mark.asyncio
async def test_bad_token_falls_through_to_nothing_even_with_dead_session():
    resolver = build_resolver(MemorySessionStore(), timeout=1)
    creds = RequestCredentials(session_id="gone", authorization="Bearer garbage")
    assert await resolver.resolve(creds) is None


def test_verify_token_reasons():
    snap = _snapshot()
    assert verify_token(_token(snap))["sub"] == snap["id"]

    with pytest.raises(TokenError) as exc:
        verify_token(_token(snap, expires_days=-1))
    assert exc.value.reason == "expired"

    with pytest.raises(TokenError) as exc:
        verify_token(_token(snap, secret="other"))
    assert exc.value.reason == "bad_signature"

    with pytest.raises(TokenError) as exc:
        verify_token("garbage")
    assert exc.value.reason == "malformed"


# ═══════════════════════════════════════════════════════════
# Store failures fall toward the token
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unavailable_store_falls_through_to_token():
    snap = _snapshot()
    identity = await build_resolver(BrokenStore(), timeout=1).resolve(
        RequestCredentials(session_id="sid", authorization=f"Bearer {_token(snap)}")
    )
    assert identity.snapshot() == snap
    assert identity.source == "token"


@pytest.mark.asyncio
async def test_unavailable_store_without_token_is_absent():
    resolver = build_resolver(BrokenStore(), timeout=1)
    assert await resolver.resolve(RequestCredentials(session_id="sid")) is None


@pytest.mark.asyncio
async def test_slow_store_times_out_to_token():
    store = SlowStore()
    session_user = _snapshot(role="admin")
    token_user = _snapshot(role="user")
    await store.set("sid", session_user, 60)

    identity = await build_resolver(store, timeout=0.05).resolve(
        RequestCredentials(session_id="sid", authorization=f"Bearer {_token(token_user)}")
    )
    assert identity.snapshot() == token_user


# ═══════════════════════════════════════════════════════════
# Role gates
# ═══════════════════════════════════════════════════════════


def _identity(role: str) -> Identity:
    return Identity.from_snapshot(_snapshot(role=role), source="session")


def test_require_role_admin_rejects_editor_with_403():
    with pytest.raises(AuthorizationDenied) as exc:
        require_role(_identity("editor"), ADMIN)
    assert exc.value.status_code == 403
    assert exc.value.detail == "Admin access required"


def test_require_role_rejects_absent_with_401():
    with pytest.raises(AuthenticationRequired) as exc:
        require_role(None, ADMIN)
    assert exc.value.status_code == 401
    assert exc.value.detail == "Not authenticated"


def test_require_role_content_class():
    editor = _identity("editor")
    assert require_role(editor, CONTENT) is editor
    with pytest.raises(AuthorizationDenied) as exc:
        require_role(_identity("user"), CONTENT)
    assert exc.value.detail == "Admin or editor access required"


def test_identity_dict_carries_both_id_keys():
    data = _identity("user").as_dict()
    assert data["id"] == data["_id"]
    assert set(data) == {"id", "_id", "username", "email", "role"}


def test_identity_from_legacy_snapshot_key():
    snap = _snapshot()
    legacy = {**snap, "_id": snap["id"]}
    del legacy["id"]
    assert Identity.from_snapshot(legacy, source="session").id == snap["id"]
