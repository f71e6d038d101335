"""User service for data access."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from freshtrio.core.exceptions import ConflictException
from freshtrio.models.users import users
from freshtrio.schemas.users import AuthProvider, UserCreate, UserUpdate

logger = structlog.get_logger(__name__)


class UserService:
    """Service for user persistence bound to one database session."""

    def __init__(self, db: AsyncSession):
        """Initialize service with a database session."""
        self.db = db

    async def create_user(self, user_data: UserCreate) -> dict:
        """
        Insert a new user.

        The unique index on ``users.email`` is the final arbiter between
        concurrent registrations; a violation is reported as a conflict.

        Raises:
            ConflictException: If a user with the same email already exists
        """
        now = datetime.now(UTC)
        values = user_data.model_dump()
        values["auth_provider"] = user_data.auth_provider.value
        values["role"] = user_data.role.value
        values["created_at"] = now
        values["updated_at"] = now

        query = users.insert().values(**values).returning(users)

        try:
            result = await self.db.execute(query)
            user = result.mappings().first()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning("user_insert_conflict", email=user_data.email)
            raise ConflictException(f"User already exists with email: {user_data.email}")

        if not user:
            raise ValueError("Failed to create user")

        return dict(user)

    async def get_user_by_id(self, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        query = select(users).where(users.c.id == user_id)
        result = await self.db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> dict | None:
        """Get user by email."""
        query = select(users).where(users.c.email == email)
        result = await self.db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def update_profile(self, user_id: UUID, user_data: UserUpdate) -> dict | None:
        """Update profile fields; identity and linkage fields are not editable here."""
        update_data = user_data.model_dump(exclude_unset=True)
        if not update_data:
            return await self.get_user_by_id(user_id)

        update_data["updated_at"] = datetime.now(UTC)

        query = update(users).where(users.c.id == user_id).values(**update_data).returning(users)

        result = await self.db.execute(query)
        user = result.mappings().first()
        await self.db.commit()

        return dict(user) if user else None

    async def link_provider(
        self, user_id: UUID, provider: AuthProvider, provider_subject_id: str
    ) -> dict | None:
        """
        Attach a provider linkage to a user that has none yet.

        Only rows without a linkage are updated; a linkage stored by a
        concurrent sign-in is never overwritten.

        Returns:
            The updated row, or None if the user is gone or already linked
        """
        query = (
            update(users)
            .where(users.c.id == user_id, users.c.provider_subject_id.is_(None))
            .values(
                auth_provider=provider.value,
                provider_subject_id=provider_subject_id,
                updated_at=datetime.now(UTC),
            )
            .returning(users)
        )

        result = await self.db.execute(query)
        user = result.mappings().first()
        await self.db.commit()

        return dict(user) if user else None
