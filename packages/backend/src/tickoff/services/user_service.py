"""Credential store — user records and password checks.

Email uniqueness is ultimately enforced by the users.email unique
constraint; the pre-check only gives the common case a clean error
without a failed INSERT.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tickoff.auth.password import hash_password, verify_password
from tickoff.db.models import User
from tickoff.errors import ConflictError

logger = structlog.get_logger()


def _email_taken() -> ConflictError:
    return ConflictError(
        "Email already registered",
        fields=[{"field": "email", "message": "Email already registered"}],
    )


class CredentialStore:
    """Persistence for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalars().first()

    async def create_user(self, name: str, email: str, password: str) -> User:
        """Create an account. Raises ConflictError if the email is taken."""
        email = email.strip().lower()
        if await self.get_by_email(email):
            raise _email_taken()

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email.
            await self.db.rollback()
            raise _email_taken()

        logger.info("auth.user_created", user_id=str(user.id))
        return user

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, else None."""
        user = await self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            return None
        return user
