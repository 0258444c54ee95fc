"""Availability slot table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

from telemed.models.metadata import metadata

SLOT_AVAILABLE = "available"
SLOT_BOOKED = "booked"
SLOT_BLOCKED = "blocked"

availability_slots = Table(
    "availability_slots",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("slot_date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("status", Text, nullable=False, server_default=text("'available'")),
    Column("created_by", Uuid, ForeignKey("users.id", ondelete="SET NULL")),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint("status IN ('available', 'booked', 'blocked')", name="status"),
    CheckConstraint("end_time > start_time", name="time_order"),
    Index("ix_availability_slots_doctor_date", "doctor_id", "slot_date"),
)
