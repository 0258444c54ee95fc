"""Prescription schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from telemed.schemas.common import CamelModel


class PrescriptionItemCreate(CamelModel):
    """One prescribed medicine."""

    medicine_id: UUID
    dosage: str = Field(..., min_length=1, description="Dosage is required")
    frequency: str = Field(..., min_length=1, description="Frequency is required")
    duration_days: int = Field(..., ge=1, description="Duration must be at least 1 day")
    instructions: str | None = None


class PrescriptionCreate(CamelModel):
    """Schema for issuing a prescription."""

    consultation_id: UUID
    notes: str | None = None
    items: list[PrescriptionItemCreate] = Field(..., min_length=1)


class PrescribedMedicine(BaseModel):
    """Medicine details embedded in a prescription item."""

    id: UUID
    name: str
    generic_name: str | None = None
    dosage_form: str | None = None
    strength: str | None = None
    manufacturer: str | None = None
    price: Decimal | None = None

    @field_serializer("price", when_used="json")
    def serialize_price(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class PrescriptionItemResponse(BaseModel):
    """Prescription item with its medicine."""

    id: UUID
    dosage: str
    frequency: str
    duration_days: int
    instructions: str | None = None
    medicine: PrescribedMedicine


class PrescriptionResponse(BaseModel):
    """Prescription with items."""

    id: UUID
    consultation_id: UUID
    doctor_id: UUID
    patient_id: UUID
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    items: list[PrescriptionItemResponse] = Field(default_factory=list)


class PrescriptionConsultation(BaseModel):
    """Consultation summary embedded in a prescription."""

    consultation_date: date
    chief_complaint: str | None = None
    status: str


class PersonName(BaseModel):
    """Name pair of a participant."""

    first_name: str | None = None
    last_name: str | None = None


class PrescriptionDetailResponse(PrescriptionResponse):
    """Prescription with consultation and participant names."""

    consultation: PrescriptionConsultation
    doctor: PersonName
    patient: PersonName
