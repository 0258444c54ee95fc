"""Availability slot service."""

from datetime import date, time
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.clock import local_today
from telemed.core.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from telemed.core.permissions import ROLE_ADMIN, require_access
from telemed.database import transaction
from telemed.models.slots import SLOT_AVAILABLE, SLOT_BOOKED, availability_slots
from telemed.schemas.common import Page
from telemed.schemas.slots import SlotCreate, SlotStatus, SlotUpdate
from telemed.services.doctor_service import DoctorService

logger = structlog.get_logger()

OVERLAP_MESSAGE = "This time slot overlaps with an existing slot"
END_BEFORE_START = "End time must be after start time"


class SlotService:
    """Service for doctor availability slots."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.doctors = DoctorService(db)

    async def _has_overlap(
        self,
        doctor_id: UUID,
        slot_date: date,
        start_time: time,
        end_time: time,
        exclude_slot_id: UUID | None = None,
    ) -> bool:
        conditions = [
            availability_slots.c.doctor_id == doctor_id,
            availability_slots.c.slot_date == slot_date,
            availability_slots.c.start_time < end_time,
            availability_slots.c.end_time > start_time,
        ]
        if exclude_slot_id is not None:
            conditions.append(availability_slots.c.id != exclude_slot_id)

        result = await self.db.execute(select(availability_slots.c.id).where(*conditions).limit(1))
        return result.first() is not None

    async def _get_slot(self, slot_id: UUID, *, for_update: bool = False) -> dict:
        query = select(availability_slots).where(availability_slots.c.id == slot_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        slot = result.mappings().first()
        if not slot:
            raise NotFoundException("Slot not found")
        return dict(slot)

    async def create_slot(self, actor: dict[str, Any], data: SlotCreate) -> dict:
        """
        Create an available slot for the caller's doctor profile.

        Admins name the doctor with ``doctor_id``. The doctor row is locked
        before the overlap check so concurrent creations for one doctor
        queue up behind each other.

        Args:
            actor: Authenticated doctor or admin
            data: Slot date and times

        Returns:
            Created slot row

        Raises:
            NotFoundException: If the doctor profile is missing
            ConflictException: If the interval overlaps another slot
        """
        if actor["role"] == ROLE_ADMIN and data.doctor_id is None:
            raise ValidationException(
                errors=[{"field": "doctorId", "message": "doctorId is required for admins"}]
            )

        try:
            async with transaction(self.db):
                if actor["role"] == ROLE_ADMIN:
                    doctor = await self.doctors.get_doctor(data.doctor_id, for_update=True)
                else:
                    doctor = await self.doctors.get_doctor_for_user(actor["id"], for_update=True)

                if await self._has_overlap(
                    doctor["id"], data.slot_date, data.start_time, data.end_time
                ):
                    raise ConflictException(OVERLAP_MESSAGE)

                result = await self.db.execute(
                    insert(availability_slots)
                    .values(
                        doctor_id=doctor["id"],
                        slot_date=data.slot_date,
                        start_time=data.start_time,
                        end_time=data.end_time,
                        status=SLOT_AVAILABLE,
                        created_by=actor["id"],
                    )
                    .returning(availability_slots)
                )
                slot = dict(result.mappings().one())
        except IntegrityError as e:
            raise ConflictException(OVERLAP_MESSAGE) from e

        logger.info("slot_created", slot_id=str(slot["id"]), doctor_id=str(doctor["id"]))
        return slot

    async def update_slot(self, actor: dict[str, Any], slot_id: UUID, data: SlotUpdate) -> dict:
        """
        Partially update a slot that is not booked.

        Raises:
            NotFoundException: If the slot does not exist
            ForbiddenException: If a doctor edits another doctor's slot
            InvalidStateException: If the slot is booked or ``booked`` is requested
            ValidationException: If the merged interval ends before it starts
            ConflictException: If the merged interval overlaps another slot
        """
        update_values = data.model_dump(exclude_unset=True, exclude_none=True)

        try:
            async with transaction(self.db):
                slot = await self._get_slot(slot_id, for_update=True)
                doctor = await self.doctors.get_doctor(slot["doctor_id"])
                require_access(
                    actor,
                    "You can only update your own slots",
                    doctor_user_id=doctor["user_id"],
                )

                if slot["status"] == SLOT_BOOKED:
                    raise InvalidStateException("Cannot update a booked slot")
                if update_values.get("status") == SlotStatus.BOOKED:
                    raise InvalidStateException(
                        "Slots are marked booked only by booking a consultation"
                    )
                if "status" in update_values:
                    update_values["status"] = update_values["status"].value

                if not update_values:
                    return slot

                slot_date = update_values.get("slot_date", slot["slot_date"])
                start_time = update_values.get("start_time", slot["start_time"])
                end_time = update_values.get("end_time", slot["end_time"])

                if end_time <= start_time:
                    raise ValidationException(
                        errors=[{"field": "endTime", "message": END_BEFORE_START}]
                    )

                if {"slot_date", "start_time", "end_time"} & update_values.keys():
                    if await self._has_overlap(
                        slot["doctor_id"], slot_date, start_time, end_time, exclude_slot_id=slot_id
                    ):
                        raise ConflictException(OVERLAP_MESSAGE)

                result = await self.db.execute(
                    update(availability_slots)
                    .where(availability_slots.c.id == slot_id)
                    .values(**update_values)
                    .returning(availability_slots)
                )
                updated = dict(result.mappings().one())
        except IntegrityError as e:
            raise ConflictException(OVERLAP_MESSAGE) from e

        return updated

    async def delete_slot(self, actor: dict[str, Any], slot_id: UUID) -> None:
        """
        Delete a slot that is not booked.

        Raises:
            NotFoundException: If the slot does not exist
            InvalidStateException: If the slot is booked
            ForbiddenException: If a doctor deletes another doctor's slot
        """
        async with transaction(self.db):
            slot = await self._get_slot(slot_id, for_update=True)
            if slot["status"] == SLOT_BOOKED:
                raise InvalidStateException("Cannot delete a booked slot")

            doctor = await self.doctors.get_doctor(slot["doctor_id"])
            require_access(
                actor,
                "You can only delete your own slots",
                doctor_user_id=doctor["user_id"],
            )

            await self.db.execute(
                delete(availability_slots).where(availability_slots.c.id == slot_id)
            )

        logger.info("slot_deleted", slot_id=str(slot_id))

    async def get_available_slots(
        self,
        doctor_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[dict]:
        """Available slots of a doctor from ``start_date`` (default today) onward."""
        conditions = [
            availability_slots.c.doctor_id == doctor_id,
            availability_slots.c.status == SLOT_AVAILABLE,
            availability_slots.c.slot_date >= (start_date or local_today()),
        ]
        if end_date is not None:
            conditions.append(availability_slots.c.slot_date <= end_date)

        result = await self.db.execute(
            select(availability_slots)
            .where(*conditions)
            .order_by(availability_slots.c.slot_date, availability_slots.c.start_time)
        )
        return [dict(row) for row in result.mappings().all()]

    async def _paginated(self, conditions: list, page: Page) -> tuple[list[dict], int]:
        count_query = select(func.count()).select_from(availability_slots).where(*conditions)
        total = (await self.db.execute(count_query)).scalar_one()

        result = await self.db.execute(
            select(availability_slots)
            .where(*conditions)
            .order_by(availability_slots.c.slot_date, availability_slots.c.start_time)
            .limit(page.limit)
            .offset(page.offset)
        )
        return [dict(row) for row in result.mappings().all()], total

    async def get_doctor_slots(
        self,
        doctor_id: UUID,
        page: Page,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[dict], int]:
        """All slots of a doctor in any status, paginated."""
        conditions = [availability_slots.c.doctor_id == doctor_id]
        if start_date is not None:
            conditions.append(availability_slots.c.slot_date >= start_date)
        if end_date is not None:
            conditions.append(availability_slots.c.slot_date <= end_date)

        return await self._paginated(conditions, page)

    async def get_my_slots(self, user_id: UUID, page: Page) -> tuple[list[dict], int]:
        """The calling doctor's slots from today onward, paginated."""
        doctor = await self.doctors.get_doctor_for_user(user_id)
        conditions = [
            availability_slots.c.doctor_id == doctor["id"],
            availability_slots.c.slot_date >= local_today(),
        ]
        return await self._paginated(conditions, page)
