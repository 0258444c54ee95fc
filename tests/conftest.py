import os
from collections.abc import AsyncGenerator
from datetime import time, timedelta
from decimal import Decimal
from uuid import uuid4

# Settings are read at import time, so the test environment goes in first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from telemed.core.clock import local_today
from telemed.core.security import create_access_token, get_password_hash
from telemed.database import get_db
from telemed.main import app
from telemed.models import availability_slots, doctors, medicines, metadata, profiles, users

TEST_PASSWORD = "password123"

# One shared in-memory database per test run
test_engine = create_async_engine(
    "sqlite+aiosqlite://",
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)


@event.listens_for(test_engine.sync_engine, "connect")
def _on_connect(dbapi_connection, connection_record) -> None:
    # Let SQLAlchemy own BEGIN so savepoints and rollbacks behave like Postgres
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(test_engine.sync_engine, "begin")
def _on_begin(conn) -> None:
    conn.exec_driver_sql("BEGIN")


TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh schema."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers_for(user: dict) -> dict:
    """Bearer header for a user dict with ``id``, ``email`` and ``role``."""
    token = create_access_token(str(user["id"]), user["email"], user["role"])
    return {"Authorization": f"Bearer {token}"}


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    role: str = "user",
    first_name: str = "Test",
    last_name: str = "User",
    is_active: bool = True,
) -> dict:
    """Insert a user with profile and return it with auth headers."""
    user_id = uuid4()
    await db.execute(
        insert(users).values(
            id=user_id,
            email=email,
            password_hash=get_password_hash(TEST_PASSWORD),
            role=role,
            is_active=is_active,
        )
    )
    await db.execute(
        insert(profiles).values(user_id=user_id, first_name=first_name, last_name=last_name)
    )
    await db.commit()

    user = {"id": user_id, "email": email, "role": role}
    user["headers"] = auth_headers_for(user)
    return user


async def create_doctor(db: AsyncSession, user: dict, registration_number: str) -> dict:
    """Insert a verified doctor profile for a doctor-role user."""
    doctor_id = uuid4()
    await db.execute(
        insert(doctors).values(
            id=doctor_id,
            user_id=user["id"],
            specialization="Cardiology",
            qualification="MBBS, MD",
            experience_years=10,
            registration_number=registration_number,
            consultation_fee=Decimal("500.00"),
            is_verified=True,
        )
    )
    await db.commit()
    return {"id": doctor_id, "user_id": user["id"], "user": user, "headers": user["headers"]}


async def create_slot(
    db: AsyncSession,
    doctor: dict,
    *,
    days_ahead: int = 1,
    start: time = time(9, 0),
    end: time = time(9, 30),
    status: str = "available",
) -> dict:
    """Insert a slot for a doctor ``days_ahead`` days from today."""
    slot_id = uuid4()
    slot_date = local_today() + timedelta(days=days_ahead)
    await db.execute(
        insert(availability_slots).values(
            id=slot_id,
            doctor_id=doctor["id"],
            slot_date=slot_date,
            start_time=start,
            end_time=end,
            status=status,
            created_by=doctor["user_id"],
        )
    )
    await db.commit()
    return {"id": slot_id, "doctor_id": doctor["id"], "slot_date": slot_date}


async def create_medicine(db: AsyncSession, name: str, *, in_stock: bool = True) -> dict:
    """Insert a catalogue medicine."""
    medicine_id = uuid4()
    await db.execute(
        insert(medicines).values(
            id=medicine_id,
            name=name,
            generic_name=f"{name} generic",
            dosage_form="tablet",
            strength="500mg",
            in_stock=in_stock,
            price=Decimal("12.50"),
        )
    )
    await db.commit()
    return {"id": medicine_id, "name": name}


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession) -> dict:
    """A patient account."""
    return await create_user(db_session, email="patient@example.com", first_name="Pat")


@pytest_asyncio.fixture
async def other_patient(db_session: AsyncSession) -> dict:
    """A second patient account."""
    return await create_user(db_session, email="other.patient@example.com", first_name="Quinn")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> dict:
    """An admin account."""
    return await create_user(db_session, email="admin@example.com", role="admin")


@pytest_asyncio.fixture
async def doctor_user(db_session: AsyncSession) -> dict:
    """A doctor-role account without a doctor profile."""
    return await create_user(
        db_session, email="doctor@example.com", role="doctor", first_name="Dana"
    )


@pytest_asyncio.fixture
async def doctor(db_session: AsyncSession, doctor_user: dict) -> dict:
    """A doctor profile with the owning account's headers."""
    return await create_doctor(db_session, doctor_user, "REG-0001")


@pytest_asyncio.fixture
async def other_doctor(db_session: AsyncSession) -> dict:
    """A second doctor profile."""
    user = await create_user(
        db_session, email="other.doctor@example.com", role="doctor", first_name="Rowan"
    )
    return await create_doctor(db_session, user, "REG-0002")


@pytest_asyncio.fixture
async def slot(db_session: AsyncSession, doctor: dict) -> dict:
    """An available slot tomorrow 09:00-09:30."""
    return await create_slot(db_session, doctor)


@pytest_asyncio.fixture
async def consultation(client: AsyncClient, patient: dict, doctor: dict, slot: dict) -> dict:
    """A scheduled consultation booked by ``patient`` through the API."""
    response = await client.post(
        "/api/consultations/book",
        json={
            "doctorId": str(doctor["id"]),
            "slotId": str(slot["id"]),
            "chiefComplaint": "Chest pain",
        },
        headers=patient["headers"],
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def set_status(client: AsyncClient, doctor: dict):
    """Move a consultation to a status as its doctor."""

    async def _set(consultation_id: str, status: str):
        return await client.put(
            f"/api/consultations/{consultation_id}",
            json={"status": status},
            headers=doctor["headers"],
        )

    return _set
