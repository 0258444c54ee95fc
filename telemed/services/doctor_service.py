"""Doctor service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.clock import local_today
from telemed.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from telemed.core.permissions import ROLE_ADMIN, ROLE_DOCTOR, require_access
from telemed.database import transaction
from telemed.models.consultations import consultations
from telemed.models.doctors import doctors
from telemed.models.users import profiles, users
from telemed.schemas.common import Page
from telemed.schemas.doctors import DoctorCreate, DoctorUpdate

logger = structlog.get_logger()

DOCTOR_PROFILE_NOT_FOUND = "Doctor profile not found"

_USER_SUMMARY_COLUMNS = (
    users.c.email,
    users.c.phone,
    profiles.c.first_name,
    profiles.c.last_name,
    profiles.c.gender,
    profiles.c.profile_image_url,
    profiles.c.city,
    profiles.c.state,
)


def _with_user(row: Any) -> dict[str, Any]:
    doctor = {key: row[key] for key in doctors.c.keys()}
    doctor["user"] = {
        "id": row["user_id"],
        **{column.name: row[column.name] for column in _USER_SUMMARY_COLUMNS},
    }
    return doctor


class DoctorService:
    """Service for doctor profile operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_doctor_for_user(self, user_id: UUID, *, for_update: bool = False) -> dict:
        """
        Resolve the doctor row owned by a user.

        Args:
            user_id: Owning user ID
            for_update: Lock the row until the current transaction ends

        Returns:
            Doctor row

        Raises:
            NotFoundException: If the user has no doctor profile
        """
        query = select(doctors).where(doctors.c.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        doctor = result.mappings().first()
        if not doctor:
            raise NotFoundException(DOCTOR_PROFILE_NOT_FOUND)
        return dict(doctor)

    async def get_doctor(self, doctor_id: UUID, *, for_update: bool = False) -> dict:
        """Get a doctor row by ID or raise NotFoundException."""
        query = select(doctors).where(doctors.c.id == doctor_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        doctor = result.mappings().first()
        if not doctor:
            raise NotFoundException("Doctor not found")
        return dict(doctor)

    async def create_doctor(self, actor: dict[str, Any], data: DoctorCreate) -> dict:
        """
        Create a doctor profile.

        Doctors create their own profile; admins may create one for any
        doctor-role user and such profiles start verified.

        Args:
            actor: Authenticated user
            data: Doctor profile fields

        Returns:
            Created doctor row

        Raises:
            ForbiddenException: If a non-admin targets another user
            NotFoundException: If the target user does not exist
            InvalidStateException: If the target user is not a doctor
            ConflictException: On an existing profile or registration number
        """
        is_admin = actor["role"] == ROLE_ADMIN
        target_user_id = data.user_id or actor["id"]

        if not is_admin and target_user_id != actor["id"]:
            raise ForbiddenException("Only admins can create doctor profiles for other users")

        result = await self.db.execute(select(users.c.role).where(users.c.id == target_user_id))
        target_role = result.scalar_one_or_none()
        if target_role is None:
            raise NotFoundException("User not found")
        if target_role != ROLE_DOCTOR:
            raise InvalidStateException("User must have doctor role")

        existing = await self.db.execute(
            select(doctors.c.id).where(doctors.c.user_id == target_user_id)
        )
        if existing.first() is not None:
            raise ConflictException("Doctor profile already exists for this user")

        taken = await self.db.execute(
            select(doctors.c.id).where(doctors.c.registration_number == data.registration_number)
        )
        if taken.first() is not None:
            raise ConflictException("Registration number already in use")

        try:
            async with transaction(self.db):
                result = await self.db.execute(
                    insert(doctors)
                    .values(
                        user_id=target_user_id,
                        specialization=data.specialization,
                        qualification=data.qualification,
                        experience_years=data.experience_years,
                        registration_number=data.registration_number,
                        consultation_fee=data.consultation_fee,
                        bio=data.bio,
                        is_verified=is_admin,
                    )
                    .returning(doctors)
                )
                doctor = dict(result.mappings().one())
        except IntegrityError as e:
            raise ConflictException(
                "Doctor profile or registration number already exists"
            ) from e

        logger.info("doctor_created", doctor_id=str(doctor["id"]), by=str(actor["id"]))
        return doctor

    async def list_doctors(
        self,
        page: Page,
        specialization: str | None = None,
        verified: bool | None = None,
    ) -> tuple[list[dict], int]:
        """
        List doctors, best rated first.

        Args:
            page: Page and limit
            specialization: Case-insensitive substring filter
            verified: Verification filter

        Returns:
            Tuple of (rows with embedded user, total count)
        """
        conditions = []
        if specialization:
            conditions.append(doctors.c.specialization.ilike(f"%{specialization}%"))
        if verified is not None:
            conditions.append(doctors.c.is_verified == verified)

        count_query = select(func.count()).select_from(doctors).where(*conditions)
        total = (await self.db.execute(count_query)).scalar_one()

        query = (
            select(doctors, *_USER_SUMMARY_COLUMNS)
            .join(users, users.c.id == doctors.c.user_id)
            .outerjoin(profiles, profiles.c.user_id == doctors.c.user_id)
            .where(*conditions)
            .order_by(doctors.c.rating.desc(), doctors.c.total_consultations.desc())
            .limit(page.limit)
            .offset(page.offset)
        )
        result = await self.db.execute(query)

        return [_with_user(row) for row in result.mappings().all()], total

    async def get_doctor_detail(self, doctor_id: UUID) -> dict:
        """Get a doctor with the owning user's public details."""
        query = (
            select(doctors, *_USER_SUMMARY_COLUMNS)
            .join(users, users.c.id == doctors.c.user_id)
            .outerjoin(profiles, profiles.c.user_id == doctors.c.user_id)
            .where(doctors.c.id == doctor_id)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Doctor not found")
        return _with_user(row)

    async def update_doctor(
        self,
        actor: dict[str, Any],
        doctor_id: UUID,
        data: DoctorUpdate,
    ) -> dict:
        """
        Partially update a doctor profile.

        Raises:
            NotFoundException: If the doctor does not exist
            ForbiddenException: If a doctor edits someone else's profile
        """
        doctor = await self.get_doctor(doctor_id)
        require_access(
            actor,
            "You can only update your own profile",
            doctor_user_id=doctor["user_id"],
        )

        update_values = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_values:
            return doctor

        async with transaction(self.db):
            result = await self.db.execute(
                update(doctors)
                .where(doctors.c.id == doctor_id)
                .values(**update_values)
                .returning(doctors)
            )
            updated = dict(result.mappings().one())

        return updated

    async def set_verified(self, doctor_id: UUID, is_verified: bool) -> dict:
        """Set the verification flag of a doctor."""
        async with transaction(self.db):
            result = await self.db.execute(
                update(doctors)
                .where(doctors.c.id == doctor_id)
                .values(is_verified=is_verified)
                .returning(doctors)
            )
            doctor = result.mappings().first()
            if not doctor:
                raise NotFoundException("Doctor not found")

        logger.info(
            "doctor_verification_changed",
            doctor_id=str(doctor_id),
            is_verified=is_verified,
        )
        return dict(doctor)

    async def get_stats(self, user_id: UUID) -> dict[str, Any]:
        """
        Consultation counts by status and today's consultations of a doctor.

        Raises:
            NotFoundException: If the user has no doctor profile
        """
        doctor = await self.get_doctor_for_user(user_id)

        result = await self.db.execute(
            select(consultations.c.status, func.count())
            .where(consultations.c.doctor_id == doctor["id"])
            .group_by(consultations.c.status)
        )
        stats: dict[str, int] = {status: count for status, count in result.all()}
        stats["total_consultations"] = sum(stats.values())

        today = await self.db.execute(
            select(consultations)
            .where(
                consultations.c.doctor_id == doctor["id"],
                consultations.c.consultation_date == local_today(),
            )
            .order_by(consultations.c.start_time)
        )

        return {
            "stats": stats,
            "today_consultations": [dict(row) for row in today.mappings().all()],
        }
