"""User service for account and profile operations."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.exceptions import InvalidStateException, NotFoundException
from telemed.core.permissions import ROLE_DOCTOR
from telemed.database import transaction
from telemed.models.doctors import doctors
from telemed.models.users import profiles, users
from telemed.schemas.auth import ProfileUpdate

logger = structlog.get_logger()

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "gender",
    "address",
    "city",
    "state",
    "pincode",
    "profile_image_url",
)


class UserService:
    """Service for user operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        query = select(users).where(users.c.id == user_id)
        result = await self.db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_me(self, user_id: UUID) -> dict[str, Any]:
        """
        Get the caller's account with profile and doctor record.

        Args:
            user_id: Authenticated user ID

        Returns:
            User fields plus ``profile`` and, for doctors, ``doctor_info``

        Raises:
            NotFoundException: If the user row is gone
        """
        query = (
            select(users, *[profiles.c[name] for name in PROFILE_FIELDS])
            .outerjoin(profiles, profiles.c.user_id == users.c.id)
            .where(users.c.id == user_id)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()

        if not row:
            raise NotFoundException("User not found")

        me = {key: row[key] for key in users.c.keys() if key != "password_hash"}
        me["profile"] = (
            {name: row[name] for name in PROFILE_FIELDS} if row["first_name"] is not None else None
        )

        if me["role"] == ROLE_DOCTOR:
            doctor_result = await self.db.execute(
                select(doctors).where(doctors.c.user_id == user_id)
            )
            doctor = doctor_result.mappings().first()
            me["doctor_info"] = dict(doctor) if doctor else None

        return me

    async def update_profile(self, user_id: UUID, data: ProfileUpdate) -> dict[str, Any]:
        """Apply a partial profile update and return the refreshed account."""
        update_values = data.model_dump(exclude_unset=True, exclude_none=True)
        if "profile_image_url" in update_values:
            update_values["profile_image_url"] = str(update_values["profile_image_url"])

        if update_values:
            async with transaction(self.db):
                result = await self.db.execute(
                    update(profiles).where(profiles.c.user_id == user_id).values(**update_values)
                )
                if result.rowcount == 0:
                    raise NotFoundException("Profile not found")

        return await self.get_me(user_id)

    async def set_active(self, actor_id: UUID, user_id: UUID, is_active: bool) -> dict[str, Any]:
        """
        Activate or deactivate an account.

        Raises:
            InvalidStateException: If an admin tries to deactivate themself
            NotFoundException: If the user does not exist
        """
        if actor_id == user_id and not is_active:
            raise InvalidStateException("You cannot deactivate your own account")

        async with transaction(self.db):
            result = await self.db.execute(
                update(users)
                .where(users.c.id == user_id)
                .values(is_active=is_active)
                .returning(users)
            )
            user = result.mappings().first()
            if not user:
                raise NotFoundException("User not found")

        logger.info("user_activation_changed", user_id=str(user_id), is_active=is_active)
        return {key: value for key, value in user.items() if key != "password_hash"}
