"""Auth service — issuing and revoking credentials.

Learn: login hands out two independent credentials for the same
snapshot: a session record (14 days, server-side, revocable) and a
signed token (7 days, stateless, not revocable). After issuance they
are never kept in sync, so logging out kills the session only.
"""

from typing import Optional

import structlog

from inkwell.auth.identity import Identity
from inkwell.auth.jwt import create_access_token
from inkwell.auth.sessions import SessionStore, SessionStoreUnavailable, new_session_id
from inkwell.config import settings
from inkwell.db.models import User

logger = structlog.get_logger()


def identity_for(user: User, source: str = "session") -> Identity:
    return Identity(
        id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        source=source,
    )


class AuthService:
    """Credential issuance for a resolved user."""

    def __init__(self, store: SessionStore):
        self.store = store

    async def issue(
        self, user: User, previous_session_id: Optional[str] = None
    ) -> tuple[Identity, Optional[str], str]:
        """Start a session and sign a token for `user`.

        Returns (identity, session_id, token). session_id is None when the
        session store is down; the token is issued regardless.
        """
        identity = identity_for(user)
        token = create_access_token(
            identity.id, identity.username, identity.email, identity.role
        )

        session_id: Optional[str] = new_session_id()
        try:
            if previous_session_id:
                await self.store.destroy(previous_session_id)
            await self.store.set(
                session_id, identity.snapshot(), settings.session_ttl_seconds
            )
        except SessionStoreUnavailable as e:
            logger.warning("auth.session_not_created", user_id=identity.id, error=str(e))
            session_id = None

        logger.info("auth.login", user_id=identity.id, session=session_id is not None)
        return identity, session_id, token

    async def revoke(self, session_id: Optional[str]) -> bool:
        """Destroy the session record. Tokens are unaffected."""
        if not session_id:
            return False
        try:
            await self.store.destroy(session_id)
        except SessionStoreUnavailable as e:
            logger.warning("auth.session_not_destroyed", error=str(e))
            return False
        logger.info("auth.logout")
        return True
