"""Exclusion constraint against overlapping slots of one doctor.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # btree_gist lets the uuid equality share a GiST index with the range
    op.execute('CREATE EXTENSION IF NOT EXISTS "btree_gist"')

    op.execute(
        """
        ALTER TABLE availability_slots
        ADD CONSTRAINT availability_slots_no_overlap
        EXCLUDE USING gist (
            doctor_id WITH =,
            tsrange(slot_date + start_time, slot_date + end_time, '[)') WITH &&
        )
        """
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.execute(
        "ALTER TABLE availability_slots DROP CONSTRAINT IF EXISTS availability_slots_no_overlap"
    )
