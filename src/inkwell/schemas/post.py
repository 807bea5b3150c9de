"""Pydantic schemas for blog posts."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from inkwell.schemas.user import CamelModel

PostStatus = Literal["draft", "published"]


class AuthorRead(CamelModel):
    id: uuid.UUID
    username: str


class PostCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    excerpt: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    cover_image: Optional[str] = None
    read_time: Optional[str] = None
    status: Optional[PostStatus] = None
    published: Optional[bool] = None
    featured: bool = False


class PostUpdate(CamelModel):
    """Partial update — omitted fields keep their value."""
    title: Optional[str] = Field(None, max_length=300)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    tags: Optional[list[str]] = None
    cover_image: Optional[str] = None
    read_time: Optional[str] = None
    status: Optional[PostStatus] = None
    published: Optional[bool] = None
    featured: Optional[bool] = None


class PostRead(CamelModel):
    id: uuid.UUID
    title: str
    slug: str
    content: str
    excerpt: str
    author: Optional[AuthorRead] = None
    cover_image: str
    tags: list[str]
    read_time: str
    status: PostStatus
    published: bool
    view_count: int
    featured: bool
    created_at: datetime
    updated_at: datetime


class PostPage(CamelModel):
    posts: list[PostRead]
    total_posts: int
    total_pages: int
    current_page: int
