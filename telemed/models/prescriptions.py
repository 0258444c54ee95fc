"""Medicine catalogue and prescription tables using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

from telemed.models.metadata import metadata

medicines = Table(
    "medicines",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False, unique=True),
    Column("generic_name", Text),
    Column("manufacturer", Text),
    Column("description", Text),
    Column("dosage_form", String(100)),
    Column("strength", String(100)),
    Column("in_stock", Boolean, nullable=False, server_default=text("true")),
    Column("price", Numeric(10, 2)),
    Column("created_by", Uuid, ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint("price IS NULL OR price >= 0", name="price"),
)

prescriptions = Table(
    "prescriptions",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "consultation_id",
        Uuid,
        ForeignKey("consultations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("doctor_id", Uuid, ForeignKey("doctors.id"), nullable=False),
    Column("patient_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
)

prescription_items = Table(
    "prescription_items",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "prescription_id",
        Uuid,
        ForeignKey("prescriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # RESTRICT: catalogue entries in use cannot disappear
    Column(
        "medicine_id",
        Uuid,
        ForeignKey("medicines.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("dosage", Text, nullable=False),
    Column("frequency", Text, nullable=False),
    Column("duration_days", Integer, nullable=False),
    Column("instructions", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("duration_days >= 1", name="duration_days"),
)
