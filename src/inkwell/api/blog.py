"""Blog API — public reading and content management.

Learn: reading is open; writing needs admin or editor. Route order
matters here: /admin/all and /post/{id} are declared before the
catch-all /{slug}.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.dependencies import (
    get_current_user_optional,
    require_admin,
    require_admin_or_editor,
)
from inkwell.auth.errors import AuthenticationRequired
from inkwell.auth.identity import CONTENT, Identity
from inkwell.db.engine import get_db
from inkwell.schemas.post import PostCreate, PostPage, PostRead, PostUpdate
from inkwell.services.post_service import PostService
from inkwell.services.user_service import UserService

router = APIRouter(prefix="/blog")


def _svc(db: AsyncSession = Depends(get_db)) -> PostService:
    return PostService(db)


def _page(result: dict) -> PostPage:
    return PostPage(
        posts=[PostRead.model_validate(p) for p in result["posts"]],
        total_posts=result["totalPosts"],
        total_pages=result["totalPages"],
        current_page=result["currentPage"],
    )


@router.get("/", response_model=PostPage)
async def list_posts(
    tag: Optional[str] = None,
    featured: bool = False,
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    svc: PostService = Depends(_svc),
):
    """Published posts, newest first."""
    return _page(await svc.list_published(tag=tag, featured=featured, limit=limit, page=page))


@router.get("/admin/all", response_model=PostPage)
async def list_all_posts(
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    _admin: Identity = Depends(require_admin),
    svc: PostService = Depends(_svc),
):
    """Every post including drafts (admins only)."""
    return _page(await svc.list_all(limit=limit, page=page))


@router.get("/post/{post_id}", response_model=PostRead)
async def get_post(
    post_id: uuid.UUID,
    identity: Optional[Identity] = Depends(get_current_user_optional),
    svc: PostService = Depends(_svc),
):
    """A post by id. Drafts are only visible to admins and editors."""
    post = await svc.get(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    if not post.published and not (identity and identity.has_role(CONTENT)):
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/{slug}", response_model=PostRead)
async def get_post_by_slug(slug: str, svc: PostService = Depends(_svc)):
    """A published post by slug. Counts as a view."""
    post = await svc.view_published(slug)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.post("/", response_model=PostRead, status_code=201)
async def create_post(
    body: PostCreate,
    identity: Identity = Depends(require_admin_or_editor),
    svc: PostService = Depends(_svc),
):
    author = await UserService(svc.db).get_author(identity.id)
    if author is None:
        # Credential outlived its account, or names no account at all
        raise AuthenticationRequired()
    return await svc.create(
        author_id=author.id,
        title=body.title,
        content=body.content,
        excerpt=body.excerpt,
        tags=body.tags,
        cover_image=body.cover_image,
        status=body.status,
        published=body.published,
        featured=body.featured,
        read_time=body.read_time,
    )


@router.put("/{post_id}", response_model=PostRead)
async def update_post(
    post_id: uuid.UUID,
    body: PostUpdate,
    _identity: Identity = Depends(require_admin_or_editor),
    svc: PostService = Depends(_svc),
):
    post = await svc.get(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return await svc.update(post, body.model_dump(exclude_unset=True))


@router.delete("/{post_id}")
async def delete_post(
    post_id: uuid.UUID,
    _identity: Identity = Depends(require_admin_or_editor),
    svc: PostService = Depends(_svc),
):
    post = await svc.get(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    await svc.delete(post)
    return {"message": "Post deleted successfully"}
