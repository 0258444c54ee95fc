"""Doctor schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from telemed.schemas.common import CamelModel
from telemed.schemas.consultations import ConsultationResponse

# ============================================================================
# Requests
# ============================================================================


class DoctorCreate(CamelModel):
    """Schema for creating a doctor profile."""

    specialization: str = Field(..., min_length=1, max_length=200)
    qualification: str = Field(..., min_length=1)
    experience_years: int | None = Field(None, ge=0)
    registration_number: str = Field(..., min_length=1, max_length=100)
    consultation_fee: Decimal = Field(..., ge=0, decimal_places=2)
    bio: str | None = None
    user_id: UUID | None = None


class DoctorUpdate(CamelModel):
    """Schema for updating a doctor profile."""

    specialization: str | None = Field(None, min_length=1, max_length=200)
    qualification: str | None = Field(None, min_length=1)
    experience_years: int | None = Field(None, ge=0)
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    bio: str | None = None


class DoctorVerificationRequest(CamelModel):
    """Schema for verifying or unverifying a doctor."""

    is_verified: bool


# ============================================================================
# Responses
# ============================================================================


class DoctorResponse(BaseModel):
    """Doctor row."""

    id: UUID
    user_id: UUID
    specialization: str
    qualification: str
    experience_years: int | None = None
    registration_number: str
    consultation_fee: Decimal
    bio: str | None = None
    is_verified: bool
    rating: Decimal
    total_consultations: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", "rating", when_used="json")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class DoctorUserSummary(BaseModel):
    """Public user details embedded in doctor responses."""

    id: UUID
    email: str
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    profile_image_url: str | None = None
    city: str | None = None
    state: str | None = None


class DoctorDetailResponse(DoctorResponse):
    """Doctor with the owning user's public details."""

    user: DoctorUserSummary


class DoctorStats(BaseModel):
    """Consultation counts by status."""

    total_consultations: int = 0
    scheduled: int = 0
    ongoing: int = 0
    completed: int = 0
    cancelled: int = 0
    no_show: int = 0


class DoctorStatsResponse(BaseModel):
    """Doctor dashboard numbers."""

    stats: DoctorStats
    today_consultations: list[ConsultationResponse] = Field(default_factory=list)
