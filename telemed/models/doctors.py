"""Doctor table definition using SQLAlchemy Core."""

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

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    # Professional credentials
    Column("specialization", String(200), nullable=False, index=True),
    Column("qualification", Text, nullable=False),
    Column("experience_years", Integer),
    Column("registration_number", String(100), nullable=False, unique=True),
    Column("consultation_fee", Numeric(10, 2), nullable=False),
    Column("bio", Text),
    # Verification and aggregates
    Column("is_verified", Boolean, nullable=False, server_default=text("false"), index=True),
    Column("rating", Numeric(3, 2), nullable=False, server_default=text("0")),
    Column("total_consultations", Integer, nullable=False, server_default=text("0")),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint("consultation_fee >= 0", name="consultation_fee"),
)
