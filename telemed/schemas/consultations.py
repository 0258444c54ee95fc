"""Consultation schemas for request/response validation."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, Field, field_serializer

from telemed.schemas.common import CamelModel
from telemed.schemas.prescriptions import PrescriptionResponse


class ConsultationStatus(str, Enum):
    """Consultation status enumeration."""

    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


TERMINAL_STATUSES = frozenset(
    {ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED, ConsultationStatus.NO_SHOW}
)

# Allowed moves of the consultation lifecycle
STATUS_TRANSITIONS: dict[ConsultationStatus, frozenset[ConsultationStatus]] = {
    ConsultationStatus.SCHEDULED: frozenset(
        {
            ConsultationStatus.ONGOING,
            ConsultationStatus.CANCELLED,
            ConsultationStatus.NO_SHOW,
        }
    ),
    ConsultationStatus.ONGOING: frozenset(
        {ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED}
    ),
    ConsultationStatus.COMPLETED: frozenset(),
    ConsultationStatus.CANCELLED: frozenset(),
    ConsultationStatus.NO_SHOW: frozenset(),
}


class ConsultationBook(CamelModel):
    """Schema for booking a consultation."""

    doctor_id: UUID
    slot_id: UUID
    chief_complaint: str = Field(..., min_length=1, max_length=2000)


class ConsultationUpdate(CamelModel):
    """Schema for a doctor/admin update of a consultation."""

    status: ConsultationStatus | None = None
    diagnosis: str | None = None
    notes: str | None = None
    meeting_link: AnyHttpUrl | None = None


class ConsultationResponse(BaseModel):
    """Consultation row."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    slot_id: UUID | None = None
    consultation_date: date
    start_time: time
    end_time: time
    status: ConsultationStatus
    chief_complaint: str | None = None
    diagnosis: str | None = None
    notes: str | None = None
    meeting_link: str | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConsultationDoctor(BaseModel):
    """Doctor summary embedded in a consultation."""

    id: UUID
    specialization: str
    qualification: str | None = None
    consultation_fee: Decimal
    first_name: str | None = None
    last_name: str | None = None

    @field_serializer("consultation_fee", when_used="json")
    def serialize_fee(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class ConsultationPatient(BaseModel):
    """Patient summary embedded in a consultation."""

    id: UUID
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None


class ConsultationListItem(ConsultationResponse):
    """Consultation with doctor and patient names."""

    doctor: ConsultationDoctor
    patient: ConsultationPatient


class ConsultationDetailResponse(ConsultationListItem):
    """Consultation with participants and prescription."""

    prescription: PrescriptionResponse | None = None
