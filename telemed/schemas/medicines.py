"""Medicine catalogue schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from telemed.schemas.common import CamelModel


class MedicineCreate(CamelModel):
    """Schema for adding a medicine."""

    name: str = Field(..., min_length=1, max_length=200)
    generic_name: str | None = None
    manufacturer: str | None = None
    description: str | None = None
    dosage_form: str | None = Field(None, max_length=100)
    strength: str | None = Field(None, max_length=100)
    in_stock: bool = True
    price: Decimal | None = Field(None, ge=0, decimal_places=2)


class MedicineUpdate(CamelModel):
    """Schema for a partial medicine update."""

    name: str | None = Field(None, min_length=1, max_length=200)
    generic_name: str | None = None
    manufacturer: str | None = None
    description: str | None = None
    dosage_form: str | None = Field(None, max_length=100)
    strength: str | None = Field(None, max_length=100)
    in_stock: bool | None = None
    price: Decimal | None = Field(None, ge=0, decimal_places=2)


class MedicineStockUpdate(CamelModel):
    """Stock toggle."""

    in_stock: bool


class MedicineResponse(BaseModel):
    """Medicine row."""

    id: UUID
    name: str
    generic_name: str | None = None
    manufacturer: str | None = None
    description: str | None = None
    dosage_form: str | None = None
    strength: str | None = None
    in_stock: bool
    price: Decimal | None = None
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("price", when_used="json")
    def serialize_price(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None
