"""Auth API — login, logout, current user, account registration.

Learn: Routes for identity establishment:
- POST /auth/login → email/password → session cookie + token
- POST /auth/logout → destroy the session (tokens stay valid)
- GET /auth/me → the resolved identity, from either channel
- POST /auth/register → admin creates an account
- POST /auth/admin-register → invite-token self-registration for staff
"""

import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.dependencies import get_current_user, get_session_store, require_admin
from inkwell.auth.identity import Identity
from inkwell.auth.sessions import SessionStore
from inkwell.config import settings
from inkwell.db.engine import get_db
from inkwell.schemas.user import (
    AdminRegisterRequest,
    LoginRequest,
    RegisterRequest,
    UserRead,
)
from inkwell.services.auth_service import AuthService
from inkwell.services.user_service import UserExists, UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def _set_session_cookie(response: Response, session_id: Optional[str]) -> None:
    if not session_id:
        return
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
    )


async def _start_session(
    request: Request, response: Response, store: SessionStore, user
) -> tuple[Identity, str]:
    previous = request.cookies.get(settings.session_cookie_name)
    identity, session_id, token = await AuthService(store).issue(user, previous)
    _set_session_cookie(response, session_id)
    return identity, token


# ─── Login ───────────────────────────────────────────────


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Login with email and password → session cookie + token."""
    user = await UserService(db).authenticate(body.email, body.password)
    if not user:
        logger.info("auth.login_failed")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    identity, token = await _start_session(request, response, store, user)
    return {
        "message": "Login successful",
        "user": identity.as_dict(),
        "token": token,
    }


# ─── Logout ──────────────────────────────────────────────


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
):
    """Destroy the session and clear the cookie.

    Learn: a token issued at login is NOT revoked; there is nowhere to
    record that. Clients must drop it themselves.
    """
    await AuthService(store).revoke(request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
    )
    return {"message": "Logout successful"}


# ─── Current user ───────────────────────────────────────


@router.get("/me")
async def get_me(identity: Identity = Depends(get_current_user)):
    """Get the current authenticated user's identity."""
    return {"user": identity.as_dict(), "source": identity.source}


# ─── Registration ───────────────────────────────────────


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a new account (admins only)."""
    try:
        user = await UserService(db).create_user(
            body.username, body.email, body.password, role=body.role
        )
    except UserExists:
        raise HTTPException(status_code=400, detail="User already exists")
    return {
        "message": "User created successfully",
        "user": UserRead.model_validate(user).model_dump(mode="json", by_alias=True),
    }


@router.post("/admin-register", status_code=201)
async def admin_register(
    body: AdminRegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Self-register an editor/admin with the shared invitation token."""
    expected = settings.admin_invite_token
    if not expected or not secrets.compare_digest(
        body.invite_token.encode(), expected.encode()
    ):
        logger.warning("auth.invite_rejected")
        raise HTTPException(status_code=403, detail="Invalid invitation token")

    role = body.role if body.role in ("admin", "editor") else "editor"
    try:
        user = await UserService(db).create_user(
            body.username, body.email, body.password, role=role
        )
    except UserExists:
        raise HTTPException(status_code=400, detail="User already exists")

    identity, token = await _start_session(request, response, store, user)
    return {"user": identity.as_dict(), "token": token}
