"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. Every protected
route goes through get_current_user_optional, which runs the resolver
once per request and caches the result on request.state, so chaining
get_current_user and require_admin in one route never resolves twice.

Three gates:
1. get_current_user — any identity, else 401
2. require_admin_or_editor — content management, else 401/403
3. require_admin — account management and full post visibility
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from inkwell.auth.errors import AuthenticationRequired
from inkwell.auth.identity import (
    ADMIN,
    CONTENT,
    Identity,
    IdentityResolver,
    RequestCredentials,
    build_resolver,
    require_role,
)
from inkwell.auth.sessions import SessionStore
from inkwell.config import settings

logger = structlog.get_logger()

_UNRESOLVED = object()


def get_session_store(request: Request) -> SessionStore:
    """The app-wide session store (set up in create_app)."""
    return request.app.state.session_store


def get_resolver(
    store: SessionStore = Depends(get_session_store),
) -> IdentityResolver:
    return build_resolver(store, timeout=settings.session_store_timeout_seconds)


def read_credentials(
    request: Request, authorization: Optional[str] = None
) -> RequestCredentials:
    return RequestCredentials(
        session_id=request.cookies.get(settings.session_cookie_name),
        authorization=authorization,
    )


async def get_current_user_optional(
    request: Request,
    authorization: Optional[str] = Header(None),
    resolver: IdentityResolver = Depends(get_resolver),
) -> Optional[Identity]:
    """Resolve the caller, or None.

    Learn: This is the "soft" auth dependency. Used for endpoints that
    behave differently for signed-in callers (e.g. draft visibility).
    """
    cached = getattr(request.state, "identity", _UNRESOLVED)
    if cached is not _UNRESOLVED:
        return cached

    identity = await resolver.resolve(read_credentials(request, authorization))
    request.state.identity = identity
    if identity is not None:
        structlog.contextvars.bind_contextvars(
            user_id=identity.id, auth_source=identity.source
        )
    return identity


async def get_current_user(
    identity: Optional[Identity] = Depends(get_current_user_optional),
) -> Identity:
    """Resolve the caller (required — 401 if no auth)."""
    if identity is None:
        raise AuthenticationRequired()
    return identity


async def require_admin_or_editor(
    identity: Optional[Identity] = Depends(get_current_user_optional),
) -> Identity:
    return require_role(identity, CONTENT)


async def require_admin(
    identity: Optional[Identity] = Depends(get_current_user_optional),
) -> Identity:
    return require_role(identity, ADMIN)
