"""Server-side session stores.

Learn: a session record maps an opaque random id (the cookie value) to a
user snapshot {id, username, email, role}. Records are written once at
login and never mutated; re-login writes a fresh record under a new id.
Expiry is the store's job: Redis via EX, the memory store by checking
the deadline on read.

Both stores raise SessionStoreUnavailable when the backend can't answer;
callers on the request path treat that as "no session".
"""

import json
import secrets
import time
from abc import ABC, abstractmethod
from typing import Optional

import redis.exceptions

from inkwell.cache import get_redis

KEY_PREFIX = "inkwell:sess:"


class SessionStoreUnavailable(Exception):
    """The session backend could not be reached."""


def new_session_id() -> str:
    """Generate an unguessable session identifier."""
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """get / set / destroy of user snapshots keyed by session id."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[dict]:
        """Return the stored snapshot, or None if absent or expired."""

    @abstractmethod
    async def set(self, session_id: str, snapshot: dict, ttl_seconds: int) -> None:
        """Store a snapshot, replacing any existing record."""

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        """Delete a record. Deleting an unknown id is not an error."""


class RedisSessionStore(SessionStore):
    """Sessions as JSON strings under inkwell:sess:{id} with a Redis TTL."""

    def __init__(self, prefix: str = KEY_PREFIX):
        self.prefix = prefix

    def _redis(self):
        try:
            return get_redis()
        except RuntimeError as e:
            raise SessionStoreUnavailable(str(e)) from e

    async def get(self, session_id: str) -> Optional[dict]:
        r = self._redis()
        try:
            raw = await r.get(self.prefix + session_id)
        except redis.exceptions.RedisError as e:
            raise SessionStoreUnavailable(str(e)) from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    async def set(self, session_id: str, snapshot: dict, ttl_seconds: int) -> None:
        r = self._redis()
        try:
            await r.set(self.prefix + session_id, json.dumps(snapshot), ex=ttl_seconds)
        except redis.exceptions.RedisError as e:
            raise SessionStoreUnavailable(str(e)) from e

    async def destroy(self, session_id: str) -> None:
        r = self._redis()
        try:
            await r.delete(self.prefix + session_id)
        except redis.exceptions.RedisError as e:
            raise SessionStoreUnavailable(str(e)) from e


class MemorySessionStore(SessionStore):
    """In-process store for development and tests.

    Sessions are lost on restart and not shared between workers.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._records: dict[str, tuple[float, dict]] = {}

    async def get(self, session_id: str) -> Optional[dict]:
        entry = self._records.get(session_id)
        if entry is None:
            return None
        deadline, snapshot = entry
        if self._clock() >= deadline:
            self._records.pop(session_id, None)
            return None
        return dict(snapshot)

    async def set(self, session_id: str, snapshot: dict, ttl_seconds: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._records[session_id] = (now + ttl_seconds, dict(snapshot))

    def _sweep(self, now: float) -> None:
        """Drop expired records that were never read again."""
        expired = [sid for sid, (deadline, _) in self._records.items() if now >= deadline]
        for sid in expired:
            del self._records[sid]

    async def destroy(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._records)


def build_session_store(backend: str) -> SessionStore:
    """Pick the store implementation named by settings.session_backend."""
    if backend == "memory":
        return MemorySessionStore()
    return RedisSessionStore()
