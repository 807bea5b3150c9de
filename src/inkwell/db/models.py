"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations are written against these models.

Key concepts:
- UUID primary keys, stored natively on PostgreSQL and as CHAR(32) elsewhere
- Python-side timestamp defaults, so a freshly flushed row can be serialised
  without an extra round-trip
- Tags live in their own table so "posts tagged X" is a plain indexed join
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

ROLES = ("user", "editor", "admin")
POST_STATUSES = ("draft", "published")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class User(Base):
    """An account that can sign in.

    Learn: role is one of user/editor/admin. Editors manage content,
    admins additionally manage accounts and see every draft.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    posts: Mapped[list["BlogPost"]] = relationship(back_populates="author", passive_deletes=True)


class BlogPost(Base):
    """A blog post. `published` always mirrors `status == "published"`."""

    __tablename__ = "blog_posts"
    __table_args__ = (
        Index("ix_blog_posts_published_created", "published", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    slug: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    cover_image: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    read_time: Mapped[str] = mapped_column(String(50), nullable=False, default="5 min read")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    author: Mapped["User"] = relationship(back_populates="posts", lazy="selectin")
    tag_rows: Mapped[list["PostTag"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PostTag.position",
    )

    @property
    def tags(self) -> list[str]:
        return [t.name for t in self.tag_rows]

    @tags.setter
    def tags(self, names: list[str]) -> None:
        # Reuse existing rows so re-saving the same tag never re-inserts it.
        existing = {t.name: t for t in self.tag_rows}
        rows = []
        for name in dict.fromkeys(names):
            row = existing.get(name) or PostTag(name=name)
            row.position = len(rows)
            rows.append(row)
        self.tag_rows = rows

    def set_status(self, status: str) -> None:
        self.status = status
        self.published = status == "published"


class PostTag(Base):
    """One tag on one post, in display order."""

    __tablename__ = "post_tags"
    __table_args__ = (
        UniqueConstraint("post_id", "name", name="uq_post_tags_post_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("blog_posts.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    post: Mapped["BlogPost"] = relationship(back_populates="tag_rows")
