"""Initial schema - users, doctors, slots, consultations, prescriptions.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    # Enable pgcrypto extension
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("phone", sa.VARCHAR(length=20), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), server_default="user", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("email_verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("phone_verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("last_login", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('user', 'doctor', 'admin')", name="users_role_check"),
        sa.PrimaryKeyConstraint("id", name="users_pkey"),
        sa.UniqueConstraint("email", name="users_email_key"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "profiles",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.VARCHAR(length=20), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("city", sa.VARCHAR(length=100), nullable=True),
        sa.Column("state", sa.VARCHAR(length=100), nullable=True),
        sa.Column("pincode", sa.VARCHAR(length=20), nullable=True),
        sa.Column("profile_image_url", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="profiles_user_id_fkey", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="profiles_pkey"),
        sa.UniqueConstraint("user_id", name="profiles_user_id_key"),
    )

    op.create_table(
        "doctors",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(), nullable=False),
        sa.Column("specialization", sa.VARCHAR(length=200), nullable=False),
        sa.Column("qualification", sa.Text(), nullable=False),
        sa.Column("experience_years", sa.Integer(), nullable=True),
        sa.Column("registration_number", sa.VARCHAR(length=100), nullable=False),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("rating", sa.Numeric(3, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("total_consultations", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("consultation_fee >= 0", name="doctors_consultation_fee_check"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="doctors_user_id_fkey", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="doctors_pkey"),
        sa.UniqueConstraint("user_id", name="doctors_user_id_key"),
        sa.UniqueConstraint("registration_number", name="doctors_registration_number_key"),
    )
    op.create_index("ix_doctors_specialization", "doctors", ["specialization"])
    op.create_index("ix_doctors_is_verified", "doctors", ["is_verified"])

    op.create_table(
        "availability_slots",
        _id_column(),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.Text(), server_default="available", nullable=False),
        sa.Column("created_by", postgresql.UUID(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('available', 'booked', 'blocked')",
            name="availability_slots_status_check",
        ),
        sa.CheckConstraint("end_time > start_time", name="availability_slots_time_order_check"),
        sa.ForeignKeyConstraint(
            ["doctor_id"],
            ["doctors.id"],
            name="availability_slots_doctor_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["users.id"],
            name="availability_slots_created_by_fkey",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="availability_slots_pkey"),
    )
    op.create_index(
        "ix_availability_slots_doctor_date", "availability_slots", ["doctor_id", "slot_date"]
    )

    op.create_table(
        "consultations",
        _id_column(),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("slot_id", postgresql.UUID(), nullable=True),
        sa.Column("consultation_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("status", sa.Text(), server_default="scheduled", nullable=False),
        sa.Column("chief_complaint", sa.Text(), nullable=True),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("meeting_link", sa.Text(), nullable=True),
        sa.Column("actual_start_time", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("actual_end_time", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('scheduled', 'ongoing', 'completed', 'cancelled', 'no_show')",
            name="consultations_status_check",
        ),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["users.id"], name="consultations_patient_id_fkey"
        ),
        sa.ForeignKeyConstraint(
            ["doctor_id"], ["doctors.id"], name="consultations_doctor_id_fkey"
        ),
        sa.ForeignKeyConstraint(
            ["slot_id"],
            ["availability_slots.id"],
            name="consultations_slot_id_fkey",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="consultations_pkey"),
    )
    op.create_index("ix_consultations_patient_id", "consultations", ["patient_id"])
    op.create_index("ix_consultations_doctor_id", "consultations", ["doctor_id"])
    op.create_index(
        "uq_consultations_active_slot",
        "consultations",
        ["slot_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        "payments",
        _id_column(),
        sa.Column("consultation_id", postgresql.UUID(), nullable=False),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column("payment_method", sa.Text(), nullable=True),
        sa.Column("transaction_id", sa.Text(), nullable=True),
        sa.Column("paid_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'refunded')",
            name="payments_status_check",
        ),
        sa.ForeignKeyConstraint(
            ["consultation_id"],
            ["consultations.id"],
            name="payments_consultation_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], name="payments_patient_id_fkey"),
        sa.PrimaryKeyConstraint("id", name="payments_pkey"),
    )
    op.create_index("ix_payments_consultation_id", "payments", ["consultation_id"])

    op.create_table(
        "medicines",
        _id_column(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("generic_name", sa.Text(), nullable=True),
        sa.Column("manufacturer", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("dosage_form", sa.VARCHAR(length=100), nullable=True),
        sa.Column("strength", sa.VARCHAR(length=100), nullable=True),
        sa.Column("in_stock", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("created_by", postgresql.UUID(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("price IS NULL OR price >= 0", name="medicines_price_check"),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"], name="medicines_created_by_fkey", ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id", name="medicines_pkey"),
        sa.UniqueConstraint("name", name="medicines_name_key"),
    )

    op.create_table(
        "prescriptions",
        _id_column(),
        sa.Column("consultation_id", postgresql.UUID(), nullable=False),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["consultation_id"],
            ["consultations.id"],
            name="prescriptions_consultation_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], name="prescriptions_doctor_id_fkey"),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["users.id"], name="prescriptions_patient_id_fkey"
        ),
        sa.PrimaryKeyConstraint("id", name="prescriptions_pkey"),
        sa.UniqueConstraint("consultation_id", name="prescriptions_consultation_id_key"),
    )
    op.create_index("ix_prescriptions_patient_id", "prescriptions", ["patient_id"])

    op.create_table(
        "prescription_items",
        _id_column(),
        sa.Column("prescription_id", postgresql.UUID(), nullable=False),
        sa.Column("medicine_id", postgresql.UUID(), nullable=False),
        sa.Column("dosage", sa.Text(), nullable=False),
        sa.Column("frequency", sa.Text(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("duration_days >= 1", name="prescription_items_duration_days_check"),
        sa.ForeignKeyConstraint(
            ["prescription_id"],
            ["prescriptions.id"],
            name="prescription_items_prescription_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["medicine_id"],
            ["medicines.id"],
            name="prescription_items_medicine_id_fkey",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="prescription_items_pkey"),
    )
    op.create_index(
        "ix_prescription_items_prescription_id", "prescription_items", ["prescription_id"]
    )
    op.create_index("ix_prescription_items_medicine_id", "prescription_items", ["medicine_id"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("prescription_items")
    op.drop_table("prescriptions")
    op.drop_table("medicines")
    op.drop_table("payments")
    op.drop_table("consultations")
    op.drop_table("availability_slots")
    op.drop_table("doctors")
    op.drop_table("profiles")
    op.drop_table("users")
