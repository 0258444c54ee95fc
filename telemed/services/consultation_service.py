"""Consultation booking and lifecycle service."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.clock import local_now, slot_start
from telemed.core.exceptions import (
    BadRequestException,
    ConflictException,
    InvalidStateException,
    NotFoundException,
)
from telemed.core.permissions import ROLE_ADMIN, ROLE_DOCTOR, ROLE_USER, require_access
from telemed.database import transaction
from telemed.models.consultations import consultations, payments
from telemed.models.doctors import doctors
from telemed.models.slots import SLOT_AVAILABLE, SLOT_BOOKED, availability_slots
from telemed.models.users import profiles, users
from telemed.schemas.common import Page
from telemed.schemas.consultations import (
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    ConsultationBook,
    ConsultationStatus,
    ConsultationUpdate,
)
from telemed.services.doctor_service import DoctorService
from telemed.services.prescription_service import PrescriptionService

logger = structlog.get_logger()

SLOT_NOT_AVAILABLE = "This slot is not available for booking"

doctor_profile = profiles.alias("doctor_profile")
patient_profile = profiles.alias("patient_profile")
patient_user = users.alias("patient_user")

_PATIENT_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "gender",
    "address",
    "city",
    "state",
)


class ConsultationService:
    """Service for booking consultations and moving them through their lifecycle."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.doctors = DoctorService(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _with_participants(self):
        return (
            select(
                consultations,
                doctors.c.user_id.label("doctor_user_id"),
                doctors.c.specialization.label("doctor_specialization"),
                doctors.c.qualification.label("doctor_qualification"),
                doctors.c.consultation_fee.label("doctor_consultation_fee"),
                doctor_profile.c.first_name.label("doctor_first_name"),
                doctor_profile.c.last_name.label("doctor_last_name"),
                patient_user.c.email.label("patient_email"),
                *[patient_profile.c[name].label(f"patient_{name}") for name in _PATIENT_FIELDS],
            )
            .join(doctors, doctors.c.id == consultations.c.doctor_id)
            .outerjoin(doctor_profile, doctor_profile.c.user_id == doctors.c.user_id)
            .join(patient_user, patient_user.c.id == consultations.c.patient_id)
            .outerjoin(patient_profile, patient_profile.c.user_id == consultations.c.patient_id)
        )

    @staticmethod
    def _list_item(row: Any) -> dict[str, Any]:
        item = {key: row[key] for key in consultations.c.keys()}
        item["doctor"] = {
            "id": row["doctor_id"],
            "specialization": row["doctor_specialization"],
            "qualification": row["doctor_qualification"],
            "consultation_fee": row["doctor_consultation_fee"],
            "first_name": row["doctor_first_name"],
            "last_name": row["doctor_last_name"],
        }
        item["patient"] = {"id": row["patient_id"], "email": row["patient_email"]}
        item["patient"].update({name: row[f"patient_{name}"] for name in _PATIENT_FIELDS})
        return item

    async def _get_locked(self, consultation_id: UUID) -> dict:
        result = await self.db.execute(
            select(consultations, doctors.c.user_id.label("doctor_user_id"))
            .join(doctors, doctors.c.id == consultations.c.doctor_id)
            .where(consultations.c.id == consultation_id)
            .with_for_update(of=consultations)
        )
        consultation = result.mappings().first()
        if not consultation:
            raise NotFoundException("Consultation not found")
        return dict(consultation)

    async def _release_slot(self, slot_id: UUID | None) -> None:
        if slot_id is None:
            return
        await self.db.execute(
            update(availability_slots)
            .where(
                availability_slots.c.id == slot_id,
                availability_slots.c.status == SLOT_BOOKED,
            )
            .values(status=SLOT_AVAILABLE)
        )

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    async def book(self, actor: dict[str, Any], data: ConsultationBook) -> dict:
        """
        Book an available slot for the calling patient.

        Consultation insert and slot transition share one transaction; the
        pending payment is written under a savepoint and never blocks the
        booking.

        Args:
            actor: Authenticated patient
            data: Doctor, slot and chief complaint

        Returns:
            Created consultation row

        Raises:
            NotFoundException: If the slot does not exist
            InvalidStateException: If the slot is not available
            BadRequestException: Slot of another doctor or in the past
        """
        try:
            async with transaction(self.db):
                result = await self.db.execute(
                    select(availability_slots)
                    .where(availability_slots.c.id == data.slot_id)
                    .with_for_update()
                )
                slot = result.mappings().first()
                if not slot:
                    raise NotFoundException("Slot not found")

                if slot["status"] != SLOT_AVAILABLE:
                    raise InvalidStateException(SLOT_NOT_AVAILABLE)

                if slot["doctor_id"] != data.doctor_id:
                    raise BadRequestException("Slot does not belong to the specified doctor")

                if slot_start(slot["slot_date"], slot["start_time"]) < local_now():
                    raise BadRequestException("Cannot book a slot in the past")

                result = await self.db.execute(
                    insert(consultations)
                    .values(
                        patient_id=actor["id"],
                        doctor_id=slot["doctor_id"],
                        slot_id=slot["id"],
                        consultation_date=slot["slot_date"],
                        start_time=slot["start_time"],
                        end_time=slot["end_time"],
                        status=ConsultationStatus.SCHEDULED.value,
                        chief_complaint=data.chief_complaint,
                    )
                    .returning(consultations)
                )
                consultation = dict(result.mappings().one())

                booked = await self.db.execute(
                    update(availability_slots)
                    .where(
                        availability_slots.c.id == slot["id"],
                        availability_slots.c.status == SLOT_AVAILABLE,
                    )
                    .values(status=SLOT_BOOKED)
                )
                if booked.rowcount == 0:
                    raise InvalidStateException(SLOT_NOT_AVAILABLE)

                doctor = await self.doctors.get_doctor(slot["doctor_id"])
                await self._record_payment(consultation, doctor["consultation_fee"])
        except IntegrityError as e:
            raise ConflictException("This slot has already been booked") from e

        logger.info(
            "consultation_booked",
            consultation_id=str(consultation["id"]),
            slot_id=str(data.slot_id),
            patient_id=str(actor["id"]),
        )
        return consultation

    async def _record_payment(self, consultation: dict, amount: Any) -> None:
        try:
            async with self.db.begin_nested():
                await self.db.execute(
                    insert(payments).values(
                        consultation_id=consultation["id"],
                        patient_id=consultation["patient_id"],
                        amount=amount,
                        status="pending",
                    )
                )
        except SQLAlchemyError as e:
            logger.warning(
                "payment_record_failed",
                consultation_id=str(consultation["id"]),
                error=str(e),
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def update_consultation(
        self,
        actor: dict[str, Any],
        consultation_id: UUID,
        data: ConsultationUpdate,
    ) -> dict:
        """
        Update status and clinical notes of a consultation.

        Status changes follow the consultation lifecycle. Entering ``ongoing``
        stamps the actual start, entering ``completed`` the actual end, and
        entering ``cancelled`` frees the slot.

        Raises:
            NotFoundException: If the consultation does not exist
            ForbiddenException: If a doctor edits another doctor's consultation
            InvalidStateException: On a transition the lifecycle does not allow
        """
        update_values = data.model_dump(exclude_unset=True, exclude_none=True)
        if "meeting_link" in update_values:
            update_values["meeting_link"] = str(update_values["meeting_link"])

        async with transaction(self.db):
            consultation = await self._get_locked(consultation_id)
            require_access(
                actor,
                "You can only update your own consultations",
                doctor_user_id=consultation["doctor_user_id"],
            )

            current = ConsultationStatus(consultation["status"])
            new_status = update_values.pop("status", None)

            if new_status is not None and new_status != current:
                if new_status not in STATUS_TRANSITIONS[current]:
                    raise InvalidStateException(
                        f"Cannot change consultation status from {current.value} "
                        f"to {new_status.value}"
                    )
                update_values["status"] = new_status.value
                if new_status == ConsultationStatus.ONGOING:
                    update_values["actual_start_time"] = datetime.now(UTC)
                elif new_status == ConsultationStatus.COMPLETED:
                    update_values["actual_end_time"] = datetime.now(UTC)

            consultation.pop("doctor_user_id")
            if not update_values:
                return consultation

            result = await self.db.execute(
                update(consultations)
                .where(consultations.c.id == consultation_id)
                .values(**update_values)
                .returning(consultations)
            )
            updated = dict(result.mappings().one())

            if new_status == ConsultationStatus.CANCELLED and new_status != current:
                await self._release_slot(updated["slot_id"])
            elif new_status == ConsultationStatus.COMPLETED and new_status != current:
                await self.db.execute(
                    update(doctors)
                    .where(doctors.c.id == updated["doctor_id"])
                    .values(total_consultations=doctors.c.total_consultations + 1)
                )

        logger.info(
            "consultation_updated",
            consultation_id=str(consultation_id),
            status=updated["status"],
        )
        return updated

    async def cancel(self, actor: dict[str, Any], consultation_id: UUID) -> dict:
        """
        Cancel a consultation and free its slot.

        Raises:
            NotFoundException: If the consultation does not exist
            ForbiddenException: If a patient cancels another patient's consultation
            InvalidStateException: If the consultation already ended
        """
        async with transaction(self.db):
            consultation = await self._get_locked(consultation_id)
            # Patients cancel their own; doctors and admins may cancel any
            if actor["role"] == ROLE_USER:
                require_access(
                    actor,
                    "You do not have permission to cancel this consultation",
                    patient_id=consultation["patient_id"],
                )

            current = ConsultationStatus(consultation["status"])
            if current in TERMINAL_STATUSES:
                raise InvalidStateException(f"Cannot cancel a {current.value} consultation")

            result = await self.db.execute(
                update(consultations)
                .where(consultations.c.id == consultation_id)
                .values(status=ConsultationStatus.CANCELLED.value)
                .returning(consultations)
            )
            cancelled = dict(result.mappings().one())

            await self._release_slot(cancelled["slot_id"])

        logger.info(
            "consultation_cancelled",
            consultation_id=str(consultation_id),
            by=str(actor["id"]),
        )
        return cancelled

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_my_consultations(
        self,
        actor: dict[str, Any],
        page: Page,
        status: ConsultationStatus | None = None,
    ) -> tuple[list[dict], int]:
        """
        Consultations visible to the caller, newest first.

        Patients see their own, doctors the ones booked with them and admins
        all of them.

        Raises:
            NotFoundException: If a doctor caller has no doctor profile
        """
        conditions = []
        if actor["role"] == ROLE_USER:
            conditions.append(consultations.c.patient_id == actor["id"])
        elif actor["role"] == ROLE_DOCTOR:
            doctor = await self.doctors.get_doctor_for_user(actor["id"])
            conditions.append(consultations.c.doctor_id == doctor["id"])
        elif actor["role"] != ROLE_ADMIN:
            return [], 0

        if status is not None:
            conditions.append(consultations.c.status == status.value)

        count_query = select(func.count()).select_from(consultations).where(*conditions)
        total = (await self.db.execute(count_query)).scalar_one()

        result = await self.db.execute(
            self._with_participants()
            .where(*conditions)
            .order_by(
                consultations.c.consultation_date.desc(),
                consultations.c.start_time.desc(),
            )
            .limit(page.limit)
            .offset(page.offset)
        )
        return [self._list_item(row) for row in result.mappings().all()], total

    async def get_consultation(self, actor: dict[str, Any], consultation_id: UUID) -> dict:
        """
        Consultation with doctor, patient and prescription.

        Raises:
            NotFoundException: If the consultation does not exist
            ForbiddenException: If the caller is neither participant nor admin
        """
        result = await self.db.execute(
            self._with_participants().where(consultations.c.id == consultation_id)
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Consultation not found")

        require_access(
            actor,
            "You do not have permission to view this consultation",
            patient_id=row["patient_id"],
            doctor_user_id=row["doctor_user_id"],
        )

        consultation = self._list_item(row)
        consultation["prescription"] = await PrescriptionService(self.db).get_for_consultation(
            consultation_id
        )
        return consultation
