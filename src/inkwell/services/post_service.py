"""Post service — blog post CRUD, listing, and slugs.

Learn: `status` is the source of truth for visibility and `published`
is kept equal to `status == "published"` on every write, so list
queries can filter on the indexed boolean.
"""

import math
import time
import uuid
from typing import Optional

import structlog
from slugify import slugify
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.db.models import BlogPost, PostTag
from inkwell.services.upload_service import ensure_upload_path

logger = structlog.get_logger()

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
    return out or "0"


def slug_for(title: str) -> str:
    """Lowercase ascii hyphenated slug; `post-<base36 ms>` if nothing survives."""
    slug = slugify(title, max_length=300)
    if not slug:
        slug = f"post-{_base36(int(time.time() * 1000))}"
    return slug


def resolve_status(status: Optional[str], published: Optional[bool]) -> Optional[str]:
    """Status wins; a bare `published` flag picks the matching status."""
    if status is not None:
        return status
    if published is not None:
        return "published" if published else "draft"
    return None


class PostService:
    """Business logic for blog posts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _unique_slug(self, base: str, exclude_id: Optional[uuid.UUID] = None) -> str:
        q = select(BlogPost.slug).where(
            (BlogPost.slug == base) | BlogPost.slug.like(f"{base}-%")
        )
        if exclude_id is not None:
            q = q.where(BlogPost.id != exclude_id)
        taken = set((await self.db.execute(q)).scalars().all())
        if base not in taken:
            return base
        n = 2
        while f"{base}-{n}" in taken:
            n += 1
        return f"{base}-{n}"

    async def _page(self, q, count_q, limit: int, page: int) -> dict:
        total = await self.db.scalar(count_q) or 0
        result = await self.db.execute(q.limit(limit).offset((page - 1) * limit))
        return {
            "posts": list(result.scalars().all()),
            "totalPosts": total,
            "totalPages": math.ceil(total / limit),
            "currentPage": page,
        }

    async def list_published(
        self,
        tag: Optional[str] = None,
        featured: bool = False,
        limit: int = 10,
        page: int = 1,
    ) -> dict:
        conditions = [BlogPost.published.is_(True)]
        if tag:
            conditions.append(BlogPost.tag_rows.any(PostTag.name == tag))
        if featured:
            conditions.append(BlogPost.featured.is_(True))
        q = select(BlogPost).where(*conditions).order_by(BlogPost.created_at.desc())
        count_q = select(func.count()).select_from(BlogPost).where(*conditions)
        return await self._page(q, count_q, limit, page)

    async def list_all(self, limit: int = 10, page: int = 1) -> dict:
        q = select(BlogPost).order_by(BlogPost.created_at.desc())
        count_q = select(func.count()).select_from(BlogPost)
        return await self._page(q, count_q, limit, page)

    async def list_recently_updated(self) -> list[BlogPost]:
        result = await self.db.execute(select(BlogPost).order_by(BlogPost.updated_at.desc()))
        return list(result.scalars().all())

    async def get(self, post_id: uuid.UUID) -> Optional[BlogPost]:
        return await self.db.get(BlogPost, post_id)

    async def view_published(self, slug: str) -> Optional[BlogPost]:
        """Fetch a published post by slug and count the view."""
        result = await self.db.execute(
            select(BlogPost).where(BlogPost.slug == slug, BlogPost.published.is_(True))
        )
        post = result.scalars().first()
        if post is None:
            return None
        post.view_count += 1
        await self.db.commit()
        return post

    async def count(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(BlogPost)) or 0

    async def create(
        self,
        author_id: uuid.UUID,
        title: str,
        content: str,
        excerpt: str,
        tags: Optional[list[str]] = None,
        cover_image: Optional[str] = None,
        status: Optional[str] = None,
        published: Optional[bool] = None,
        featured: bool = False,
        read_time: Optional[str] = None,
    ) -> BlogPost:
        post = BlogPost(
            author_id=author_id,
            title=title,
            slug=await self._unique_slug(slug_for(title)),
            content=content,
            excerpt=excerpt,
            cover_image=ensure_upload_path(cover_image or ""),
            featured=featured,
        )
        if read_time:
            post.read_time = read_time
        post.tags = tags or []
        post.set_status(resolve_status(status, published) or "published")
        self.db.add(post)
        await self.db.commit()
        await self.db.refresh(post, ["author"])
        logger.info("post.created", post_id=str(post.id), slug=post.slug)
        return post

    async def update(self, post: BlogPost, changes: dict) -> BlogPost:
        """Apply a partial update. Keys absent from `changes` are untouched."""
        if changes.get("title") and changes["title"] != post.title:
            post.title = changes["title"]
            post.slug = await self._unique_slug(slug_for(post.title), exclude_id=post.id)
        for field in ("content", "excerpt", "read_time"):
            if changes.get(field):
                setattr(post, field, changes[field])
        if changes.get("cover_image"):
            post.cover_image = ensure_upload_path(changes["cover_image"])
        if changes.get("tags") is not None:
            post.tags = changes["tags"]
        if changes.get("featured") is not None:
            post.featured = changes["featured"]
        status = resolve_status(changes.get("status"), changes.get("published"))
        if status is not None:
            post.set_status(status)
        await self.db.commit()
        await self.db.refresh(post, ["author", "tag_rows"])
        logger.info("post.updated", post_id=str(post.id))
        return post

    async def delete(self, post: BlogPost) -> None:
        await self.db.delete(post)
        await self.db.commit()
        logger.info("post.deleted", post_id=str(post.id))
