"""Consultation and payment tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

from telemed.models.metadata import metadata

consultations = Table(
    "consultations",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column("patient_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("doctor_id", Uuid, ForeignKey("doctors.id"), nullable=False, index=True),
    Column("slot_id", Uuid, ForeignKey("availability_slots.id", ondelete="SET NULL")),
    # Schedule (copied from the slot at booking time)
    Column("consultation_date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default=text("'scheduled'")),
    # Clinical details
    Column("chief_complaint", Text),
    Column("diagnosis", Text),
    Column("notes", Text),
    Column("meeting_link", Text),
    Column("actual_start_time", DateTime(timezone=True)),
    Column("actual_end_time", DateTime(timezone=True)),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint(
        "status IN ('scheduled', 'ongoing', 'completed', 'cancelled', 'no_show')",
        name="status",
    ),
    # A slot carries at most one live consultation
    Index(
        "uq_consultations_active_slot",
        "slot_id",
        unique=True,
        postgresql_where=text("status <> 'cancelled'"),
        sqlite_where=text("status <> 'cancelled'"),
    ),
)

payments = Table(
    "payments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "consultation_id",
        Uuid,
        ForeignKey("consultations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("patient_id", Uuid, ForeignKey("users.id"), nullable=False),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("status", Text, nullable=False, server_default=text("'pending'")),
    Column("payment_method", Text),
    Column("transaction_id", Text),
    Column("paid_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint(
        "status IN ('pending', 'completed', 'failed', 'refunded')",
        name="status",
    ),
)
