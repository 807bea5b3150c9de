"""User service — account lookup, creation, and admin management.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. The CLI's
admin bootstrap goes through the same methods as the HTTP routes.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.auth.password import hash_password, verify_password
from inkwell.db.models import BlogPost, User

logger = structlog.get_logger()


class UserExists(Exception):
    """Username or email already taken."""


class UserHasPosts(Exception):
    """User can't be deleted while they author posts."""


class UserService:
    """Business logic for accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_author(self, user_id: str) -> Optional[User]:
        """The live account behind an identity id, or None.

        Tokens outlive accounts, and old session records may carry ids
        that are not UUIDs, so both cases come back as None.
        """
        try:
            key = uuid.UUID(str(user_id))
        except ValueError:
            return None
        return await self.get(key)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def find_conflict(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[User]:
        """Another user holding this username or email, if any."""
        clauses = []
        if username is not None:
            clauses.append(User.username == username)
        if email is not None:
            clauses.append(User.email == email)
        if not clauses:
            return None
        q = select(User).where(or_(*clauses))
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        result = await self.db.execute(q)
        return result.scalars().first()

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user when email and password match, else None."""
        user = await self.get_by_email(email)
        if not user or not user.password_hash:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def create_user(
        self, username: str, email: str, password: str, role: str = "user"
    ) -> User:
        if await self.find_conflict(username=username, email=email):
            raise UserExists()
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        self.db.add(user)
        await self.db.commit()
        logger.info("user.created", user_id=str(user.id), role=role)
        return user

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at))
        return list(result.scalars().all())

    async def update_user(
        self,
        user: User,
        username: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
    ) -> User:
        if await self.find_conflict(username=username, email=email, exclude_id=user.id):
            raise UserExists()
        if username is not None:
            user.username = username
        if email is not None:
            user.email = email
        if role is not None:
            user.role = role
        await self.db.commit()
        logger.info("user.updated", user_id=str(user.id))
        return user

    async def delete_user(self, user: User) -> None:
        count = await self.db.scalar(
            select(func.count()).select_from(BlogPost).where(BlogPost.author_id == user.id)
        )
        if count:
            raise UserHasPosts()
        await self.db.delete(user)
        await self.db.commit()
        logger.info("user.deleted", user_id=str(user.id))

    async def get_admin(self) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.role == "admin").limit(1))
        return result.scalars().first()

    async def ensure_admin(
        self, username: str, email: str, password: str
    ) -> tuple[User, bool]:
        """Create the bootstrap admin unless any admin exists.

        Returns (admin, created).
        """
        existing = await self.get_admin()
        if existing:
            return existing, False
        user = await self.create_user(username, email, password, role="admin")
        return user, True
