"""Slot overlap protection on PostgreSQL.

These tests need a disposable PostgreSQL database in ``TEST_DATABASE_URL``;
its tables are dropped and recreated. Without one the module is skipped,
since SQLite has neither row locks nor exclusion constraints.
"""

import asyncio
import os
from collections.abc import AsyncGenerator
from datetime import time, timedelta

import pytest
import pytest_asyncio
from conftest import create_doctor, create_user
from sqlalchemy import func, insert, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from telemed.core.clock import local_today
from telemed.core.exceptions import ConflictException
from telemed.models import availability_slots, metadata
from telemed.schemas.slots import SlotCreate
from telemed.services.slot_service import SlotService

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "").replace(
    "postgresql://", "postgresql+asyncpg://"
)

pytestmark = pytest.mark.skipif(
    not TEST_DATABASE_URL.startswith("postgresql+asyncpg://"),
    reason="TEST_DATABASE_URL does not point at PostgreSQL",
)


@pytest_asyncio.fixture
async def pg_sessions() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh schema including the exclusion constraint."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

        # Same constraint as migration 002
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "btree_gist"'))
        await conn.execute(
            text(
                """
            ALTER TABLE availability_slots
            ADD CONSTRAINT availability_slots_no_overlap
            EXCLUDE USING gist (
                doctor_id WITH =,
                tsrange(slot_date + start_time, slot_date + end_time, '[)') WITH &&
            )
        """
            )
        )

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def pg_doctor(pg_sessions: async_sessionmaker[AsyncSession]) -> dict:
    """A doctor profile in the PostgreSQL database."""
    async with pg_sessions() as session:
        user = await create_user(session, email="pg.doctor@example.com", role="doctor")
        return await create_doctor(session, user, "REG-PG-1")


def slot_body(start: str, end: str) -> SlotCreate:
    """Slot for tomorrow."""
    return SlotCreate.model_validate(
        {
            "slotDate": (local_today() + timedelta(days=1)).isoformat(),
            "startTime": start,
            "endTime": end,
        }
    )


@pytest.mark.asyncio
async def test_concurrent_overlapping_creations(
    pg_sessions: async_sessionmaker[AsyncSession],
    pg_doctor: dict,
) -> None:
    """Two overlapping creations racing for one doctor: exactly one wins."""
    actor = {"id": pg_doctor["user_id"], "role": "doctor"}

    async def create(start: str, end: str) -> dict:
        async with pg_sessions() as session:
            return await SlotService(session).create_slot(actor, slot_body(start, end))

    results = await asyncio.gather(
        create("09:00:00", "09:30:00"),
        create("09:15:00", "09:45:00"),
        return_exceptions=True,
    )

    created = [r for r in results if isinstance(r, dict)]
    conflicts = [r for r in results if isinstance(r, ConflictException)]
    assert len(created) == 1
    assert len(conflicts) == 1
    assert conflicts[0].message == "This time slot overlaps with an existing slot"

    async with pg_sessions() as session:
        count = await session.scalar(select(func.count()).select_from(availability_slots))
    assert count == 1


@pytest.mark.asyncio
async def test_exclusion_constraint_rejects_direct_overlap(
    pg_sessions: async_sessionmaker[AsyncSession],
    pg_doctor: dict,
) -> None:
    """Rows written around the service still cannot overlap; touching is fine."""
    slot_date = local_today() + timedelta(days=1)

    def row(start: time, end: time) -> dict:
        return {
            "doctor_id": pg_doctor["id"],
            "slot_date": slot_date,
            "start_time": start,
            "end_time": end,
        }

    async with pg_sessions() as session:
        await session.execute(insert(availability_slots).values(**row(time(9), time(9, 30))))
        await session.execute(insert(availability_slots).values(**row(time(9, 30), time(10))))
        await session.commit()

        with pytest.raises(IntegrityError):
            await session.execute(
                insert(availability_slots).values(**row(time(9, 15), time(9, 45)))
            )
        await session.rollback()

        count = await session.scalar(select(func.count()).select_from(availability_slots))
    assert count == 2
