"""Prescription service."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from telemed.core.permissions import require_access
from telemed.database import transaction
from telemed.models.consultations import consultations
from telemed.models.doctors import doctors
from telemed.models.prescriptions import medicines, prescription_items, prescriptions
from telemed.models.users import profiles
from telemed.schemas.consultations import ConsultationStatus
from telemed.schemas.prescriptions import PrescriptionCreate
from telemed.services.doctor_service import DoctorService

logger = structlog.get_logger()

PRESCRIBABLE_STATUSES = (ConsultationStatus.ONGOING.value, ConsultationStatus.COMPLETED.value)

doctor_profile = profiles.alias("doctor_profile")
patient_profile = profiles.alias("patient_profile")

_MEDICINE_FIELDS = ("name", "generic_name", "dosage_form", "strength", "manufacturer", "price")


class PrescriptionService:
    """Service for issuing and reading prescriptions."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _load_items(self, prescription_ids: list[UUID]) -> dict[UUID, list[dict]]:
        """Items of the given prescriptions, each with its medicine, keyed by prescription."""
        items: dict[UUID, list[dict]] = {pid: [] for pid in prescription_ids}
        if not prescription_ids:
            return items

        result = await self.db.execute(
            select(
                prescription_items,
                *[medicines.c[name].label(f"medicine_{name}") for name in _MEDICINE_FIELDS],
            )
            .join(medicines, medicines.c.id == prescription_items.c.medicine_id)
            .where(prescription_items.c.prescription_id.in_(prescription_ids))
            .order_by(prescription_items.c.created_at, prescription_items.c.id)
        )

        for row in result.mappings().all():
            medicine = {"id": row["medicine_id"]}
            medicine.update({name: row[f"medicine_{name}"] for name in _MEDICINE_FIELDS})
            items[row["prescription_id"]].append(
                {
                    "id": row["id"],
                    "dosage": row["dosage"],
                    "frequency": row["frequency"],
                    "duration_days": row["duration_days"],
                    "instructions": row["instructions"],
                    "medicine": medicine,
                }
            )

        return items

    def _detail_query(self):
        return (
            select(
                prescriptions,
                consultations.c.consultation_date,
                consultations.c.chief_complaint,
                consultations.c.status.label("consultation_status"),
                doctors.c.user_id.label("doctor_user_id"),
                doctor_profile.c.first_name.label("doctor_first_name"),
                doctor_profile.c.last_name.label("doctor_last_name"),
                patient_profile.c.first_name.label("patient_first_name"),
                patient_profile.c.last_name.label("patient_last_name"),
            )
            .join(consultations, consultations.c.id == prescriptions.c.consultation_id)
            .join(doctors, doctors.c.id == prescriptions.c.doctor_id)
            .outerjoin(doctor_profile, doctor_profile.c.user_id == doctors.c.user_id)
            .outerjoin(patient_profile, patient_profile.c.user_id == prescriptions.c.patient_id)
        )

    @staticmethod
    def _detail(row: Any, items: list[dict]) -> dict[str, Any]:
        prescription = {key: row[key] for key in prescriptions.c.keys()}
        prescription["items"] = items
        prescription["consultation"] = {
            "consultation_date": row["consultation_date"],
            "chief_complaint": row["chief_complaint"],
            "status": row["consultation_status"],
        }
        prescription["doctor"] = {
            "first_name": row["doctor_first_name"],
            "last_name": row["doctor_last_name"],
        }
        prescription["patient"] = {
            "first_name": row["patient_first_name"],
            "last_name": row["patient_last_name"],
        }
        return prescription

    async def get_for_consultation(self, consultation_id: UUID) -> dict | None:
        """Prescription of a consultation with its items, or None."""
        result = await self.db.execute(
            select(prescriptions).where(prescriptions.c.consultation_id == consultation_id)
        )
        row = result.mappings().first()
        if not row:
            return None

        prescription = dict(row)
        prescription["items"] = (await self._load_items([row["id"]]))[row["id"]]
        return prescription

    async def create_prescription(self, actor: dict[str, Any], data: PrescriptionCreate) -> dict:
        """
        Issue a prescription for one of the caller's consultations.

        The prescription and all of its items are written in one transaction.

        Args:
            actor: Authenticated doctor
            data: Consultation, notes and items

        Returns:
            Created prescription with items

        Raises:
            NotFoundException: Missing doctor profile, consultation or medicine
            ForbiddenException: If the consultation belongs to another doctor
            InvalidStateException: Wrong consultation status or out-of-stock medicine
            ConflictException: If the consultation already has a prescription
        """
        doctor = await DoctorService(self.db).get_doctor_for_user(actor["id"])

        try:
            async with transaction(self.db):
                result = await self.db.execute(
                    select(consultations)
                    .where(consultations.c.id == data.consultation_id)
                    .with_for_update()
                )
                consultation = result.mappings().first()
                if not consultation:
                    raise NotFoundException("Consultation not found")

                if consultation["doctor_id"] != doctor["id"]:
                    raise ForbiddenException("You can only prescribe for your own consultations")

                if consultation["status"] not in PRESCRIBABLE_STATUSES:
                    raise InvalidStateException(
                        "Can only prescribe for ongoing or completed consultations"
                    )

                existing = await self.db.execute(
                    select(prescriptions.c.id).where(
                        prescriptions.c.consultation_id == data.consultation_id
                    )
                )
                if existing.first() is not None:
                    raise ConflictException("Prescription already exists for this consultation")

                await self._check_medicines([item.medicine_id for item in data.items])

                result = await self.db.execute(
                    insert(prescriptions)
                    .values(
                        consultation_id=consultation["id"],
                        doctor_id=doctor["id"],
                        patient_id=consultation["patient_id"],
                        notes=data.notes,
                    )
                    .returning(prescriptions)
                )
                prescription = dict(result.mappings().one())

                await self.db.execute(
                    insert(prescription_items),
                    [
                        {
                            "prescription_id": prescription["id"],
                            "medicine_id": item.medicine_id,
                            "dosage": item.dosage,
                            "frequency": item.frequency,
                            "duration_days": item.duration_days,
                            "instructions": item.instructions,
                        }
                        for item in data.items
                    ],
                )
        except IntegrityError as e:
            raise ConflictException("Prescription already exists for this consultation") from e

        logger.info(
            "prescription_created",
            prescription_id=str(prescription["id"]),
            consultation_id=str(data.consultation_id),
            items=len(data.items),
        )

        prescription["items"] = (await self._load_items([prescription["id"]]))[prescription["id"]]
        return prescription

    async def _check_medicines(self, medicine_ids: list[UUID]) -> None:
        unique_ids = list(dict.fromkeys(medicine_ids))
        result = await self.db.execute(
            select(medicines.c.id, medicines.c.name, medicines.c.in_stock).where(
                medicines.c.id.in_(unique_ids)
            )
        )
        found = {row["id"]: row for row in result.mappings().all()}

        if len(found) != len(unique_ids):
            raise NotFoundException("One or more medicines not found")

        out_of_stock = [found[mid]["name"] for mid in unique_ids if not found[mid]["in_stock"]]
        if out_of_stock:
            raise InvalidStateException(
                f"Following medicines are out of stock: {', '.join(out_of_stock)}"
            )

    async def get_by_consultation(self, actor: dict[str, Any], consultation_id: UUID) -> dict:
        """
        Prescription of a consultation with items, consultation summary and names.

        Raises:
            NotFoundException: If the consultation has no prescription
            ForbiddenException: If the caller is not a participant or admin
        """
        result = await self.db.execute(
            self._detail_query().where(prescriptions.c.consultation_id == consultation_id)
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Prescription not found")

        require_access(
            actor,
            "You do not have permission to view this prescription",
            patient_id=row["patient_id"],
            doctor_user_id=row["doctor_user_id"],
        )

        items = await self._load_items([row["id"]])
        return self._detail(row, items[row["id"]])

    async def get_my_prescriptions(self, patient_id: UUID) -> list[dict]:
        """A patient's prescriptions, newest first."""
        result = await self.db.execute(
            self._detail_query()
            .where(prescriptions.c.patient_id == patient_id)
            .order_by(prescriptions.c.created_at.desc())
        )
        rows = result.mappings().all()
        items = await self._load_items([row["id"] for row in rows])
        return [self._detail(row, items[row["id"]]) for row in rows]
