"""Identity resolution — one canonical identity from two credential channels.

Learn: the resolver tries strategies in a fixed order and stops at the
first that produces an identity:

    NoCredentials ─ session lookup ─→ SessionIdentity
                  ─ token verify   ─→ TokenIdentity
                  ─────────────────→ Absent (None)

Strategies never raise. A timed-out or broken session store, or a bad,
expired or malformed token, is logged and treated exactly like the
credential not being there, so one broken channel can't lock out a
caller whose other channel is fine.
"""

import asyncio
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from inkwell.auth.errors import AuthenticationRequired, AuthorizationDenied
from inkwell.auth.jwt import TokenError, verify_token
from inkwell.auth.sessions import SessionStore, SessionStoreUnavailable

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "

# Role classes
ADMIN = frozenset({"admin"})
CONTENT = frozenset({"admin", "editor"})

_ROLE_CLASS_NAMES = {
    ADMIN: "Admin",
    CONTENT: "Admin or editor",
}


@dataclass(frozen=True)
class Identity:
    """The authenticated caller for one request. Never persisted."""

    id: str
    username: str
    email: str
    role: str
    source: str = "session"  # "session" or "token"

    @classmethod
    def from_snapshot(cls, snapshot: dict, source: str) -> "Identity":
        user_id = snapshot.get("id") or snapshot.get("_id")
        return cls(
            id=str(user_id),
            username=snapshot["username"],
            email=snapshot["email"],
            role=snapshot["role"],
            source=source,
        )

    @classmethod
    def from_claims(cls, claims: dict) -> "Identity":
        return cls(
            id=str(claims["sub"]),
            username=claims["username"],
            email=claims["email"],
            role=claims["role"],
            source="token",
        )

    def snapshot(self) -> dict:
        """The {id, username, email, role} shape stored in sessions."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
        }

    def as_dict(self) -> dict:
        """Snapshot plus the legacy `_id` alias some clients still read."""
        data = self.snapshot()
        data["_id"] = self.id
        return data

    def has_role(self, roles: Iterable[str]) -> bool:
        return self.role in roles


@dataclass(frozen=True)
class RequestCredentials:
    """Raw credential evidence pulled off one request."""

    session_id: Optional[str] = None
    authorization: Optional[str] = None

    @property
    def bearer_token(self) -> Optional[str]:
        if self.authorization and self.authorization.startswith(BEARER_PREFIX):
            token = self.authorization[len(BEARER_PREFIX):].strip()
            return token or None
        return None


class SessionStrategy:
    """Resolve from the server-side session record."""

    name = "session"

    def __init__(self, store: SessionStore, timeout: float):
        self.store = store
        self.timeout = timeout

    async def resolve(self, credentials: RequestCredentials) -> Optional[Identity]:
        if not credentials.session_id:
            return None
        try:
            snapshot = await asyncio.wait_for(
                self.store.get(credentials.session_id), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("auth.session_store_timeout", timeout=self.timeout)
            return None
        except SessionStoreUnavailable as e:
            logger.warning("auth.session_store_unavailable", error=str(e))
            return None
        if not snapshot:
            return None
        try:
            return Identity.from_snapshot(snapshot, source=self.name)
        except KeyError as e:
            logger.warning("auth.session_record_incomplete", missing=str(e))
            return None


class TokenStrategy:
    """Resolve from a bearer token."""

    name = "token"

    def __init__(self, secret: Optional[str] = None):
        self.secret = secret

    async def resolve(self, credentials: RequestCredentials) -> Optional[Identity]:
        token = credentials.bearer_token
        if not token:
            return None
        try:
            claims = verify_token(token, secret=self.secret)
        except TokenError as e:
            logger.info("auth.token_rejected", reason=e.reason)
            return None
        return Identity.from_claims(claims)


class IdentityResolver:
    """Try each strategy in order; first identity wins."""

    def __init__(self, strategies: list):
        self.strategies = strategies

    async def resolve(self, credentials: RequestCredentials) -> Optional[Identity]:
        for strategy in self.strategies:
            identity = await strategy.resolve(credentials)
            if identity is not None:
                return identity
        return None


def build_resolver(
    store: SessionStore, timeout: float, secret: Optional[str] = None
) -> IdentityResolver:
    """Session first, then token. The order is not configurable."""
    return IdentityResolver([SessionStrategy(store, timeout), TokenStrategy(secret)])


def role_class_name(roles: Iterable[str]) -> str:
    roles = frozenset(roles)
    if roles in _ROLE_CLASS_NAMES:
        return _ROLE_CLASS_NAMES[roles]
    return " or ".join(sorted(roles)).capitalize()


def require_role(identity: Optional[Identity], allowed_roles: Iterable[str]) -> Identity:
    """Return the identity if its role is allowed.

    Raises AuthenticationRequired (401) for no identity and
    AuthorizationDenied (403) for a known identity with the wrong role.
    """
    if identity is None:
        raise AuthenticationRequired()
    allowed_roles = frozenset(allowed_roles)
    if not identity.has_role(allowed_roles):
        raise AuthorizationDenied(f"{role_class_name(allowed_roles)} access required")
    return identity
