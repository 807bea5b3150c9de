"""Admin API — account management, every post, upload inventory.

Learn: the whole router is admin-only; the gate is applied once at
include time in api/__init__.py, and handlers that need the caller
still declare require_admin (resolution is cached per request).
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.dependencies import require_admin
from inkwell.auth.identity import Identity
from inkwell.db.engine import get_db
from inkwell.schemas.post import PostRead
from inkwell.schemas.user import UserRead, UserUpdate
from inkwell.services.post_service import PostService
from inkwell.services.upload_service import UploadService
from inkwell.services.user_service import UserExists, UserHasPosts, UserService

router = APIRouter(prefix="/admin")


def _users(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/posts", response_model=list[PostRead])
async def list_posts(db: AsyncSession = Depends(get_db)):
    """Every post, most recently updated first."""
    return await PostService(db).list_recently_updated()


@router.get("/users", response_model=list[UserRead])
async def list_users(svc: UserService = Depends(_users)):
    return await svc.list_users()


@router.put("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    svc: UserService = Depends(_users),
):
    user = await svc.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        return await svc.update_user(
            user, username=body.username, email=body.email, role=body.role
        )
    except UserExists:
        raise HTTPException(status_code=409, detail="Username or email already in use")


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    admin: Identity = Depends(require_admin),
    svc: UserService = Depends(_users),
):
    if str(user_id) == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = await svc.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        await svc.delete_user(user)
    except UserHasPosts:
        raise HTTPException(status_code=409, detail="User still authors posts")
    return {"message": "User deleted successfully"}


@router.get("/uploads")
async def list_uploads():
    return UploadService().list_files()
