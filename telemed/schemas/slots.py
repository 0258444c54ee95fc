"""Availability slot schemas."""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ValidationInfo, field_validator

from telemed.schemas.common import CamelModel, DateStr, TimeStr


class SlotStatus(str, Enum):
    """Slot status enumeration."""

    AVAILABLE = "available"
    BOOKED = "booked"
    BLOCKED = "blocked"


class SlotCreate(CamelModel):
    """Schema for creating a slot."""

    slot_date: DateStr
    start_time: TimeStr
    end_time: TimeStr
    # Admins create slots on behalf of a doctor
    doctor_id: UUID | None = None

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v: time, info: ValidationInfo) -> time:
        """Validate end time is after start time."""
        start = info.data.get("start_time")
        if start is not None and v <= start:
            raise ValueError("End time must be after start time")
        return v


class SlotUpdate(CamelModel):
    """Schema for updating a slot; interval order is checked after merging."""

    slot_date: DateStr | None = None
    start_time: TimeStr | None = None
    end_time: TimeStr | None = None
    status: SlotStatus | None = None


class SlotResponse(BaseModel):
    """Slot row."""

    id: UUID
    doctor_id: UUID
    slot_date: date
    start_time: time
    end_time: time
    status: SlotStatus
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
