"""Tests for availability slot endpoints."""

from datetime import time, timedelta

import pytest
from conftest import create_slot
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.clock import local_today
from telemed.models.slots import availability_slots


def slot_payload(start: str, end: str, days_ahead: int = 1) -> dict:
    """Slot creation body for a date ``days_ahead`` days from today."""
    return {
        "slotDate": (local_today() + timedelta(days=days_ahead)).isoformat(),
        "startTime": start,
        "endTime": end,
    }


@pytest.mark.asyncio
async def test_create_slot(client: AsyncClient, doctor: dict) -> None:
    """Doctors create available slots for themselves."""
    response = await client.post(
        "/api/slots", json=slot_payload("09:00:00", "09:30:00"), headers=doctor["headers"]
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Availability slot created successfully"
    assert body["data"]["status"] == "available"
    assert body["data"]["doctor_id"] == str(doctor["id"])
    assert body["data"]["created_by"] == str(doctor["user_id"])
    assert body["data"]["start_time"] == "09:00:00"


@pytest.mark.asyncio
async def test_overlap_scenario(client: AsyncClient, doctor: dict) -> None:
    """Shared minutes conflict; slots that only touch at an endpoint do not."""
    first = await client.post(
        "/api/slots", json=slot_payload("09:00:00", "09:30:00"), headers=doctor["headers"]
    )
    assert first.status_code == 201

    overlapping = await client.post(
        "/api/slots", json=slot_payload("09:15:00", "09:45:00"), headers=doctor["headers"]
    )
    assert overlapping.status_code == 409
    assert overlapping.json()["error"] == "This time slot overlaps with an existing slot"

    adjacent = await client.post(
        "/api/slots", json=slot_payload("09:30:00", "10:00:00"), headers=doctor["headers"]
    )
    assert adjacent.status_code == 201

    enclosing = await client.post(
        "/api/slots", json=slot_payload("08:45:00", "10:15:00"), headers=doctor["headers"]
    )
    assert enclosing.status_code == 409

    before = await client.post(
        "/api/slots", json=slot_payload("08:30:00", "09:00:00"), headers=doctor["headers"]
    )
    assert before.status_code == 201

    other_day = await client.post(
        "/api/slots",
        json=slot_payload("09:15:00", "09:45:00", days_ahead=2),
        headers=doctor["headers"],
    )
    assert other_day.status_code == 201


@pytest.mark.asyncio
async def test_slots_of_different_doctors_do_not_conflict(
    client: AsyncClient,
    doctor: dict,
    other_doctor: dict,
) -> None:
    """Overlap is checked per doctor."""
    payload = slot_payload("11:00:00", "11:30:00")
    for owner in (doctor, other_doctor):
        response = await client.post("/api/slots", json=payload, headers=owner["headers"])
        assert response.status_code == 201


@pytest.mark.asyncio
async def test_create_slot_validation(client: AsyncClient, doctor: dict) -> None:
    """End must follow start and times must be HH:MM:SS."""
    reversed_times = await client.post(
        "/api/slots", json=slot_payload("10:00:00", "09:00:00"), headers=doctor["headers"]
    )
    assert reversed_times.status_code == 400
    assert reversed_times.json()["errors"] == [
        {"field": "endTime", "message": "End time must be after start time"}
    ]

    bad_format = await client.post(
        "/api/slots", json=slot_payload("9:00", "09:30:00"), headers=doctor["headers"]
    )
    assert bad_format.status_code == 400
    assert bad_format.json()["errors"][0] == {
        "field": "startTime",
        "message": "Invalid time format (HH:MM:SS)",
    }


@pytest.mark.asyncio
async def test_create_slot_permissions(
    client: AsyncClient,
    patient: dict,
    doctor_user: dict,
) -> None:
    """Patients are refused; doctors need a profile."""
    as_patient = await client.post(
        "/api/slots", json=slot_payload("09:00:00", "09:30:00"), headers=patient["headers"]
    )
    assert as_patient.status_code == 403

    no_profile = await client.post(
        "/api/slots", json=slot_payload("09:00:00", "09:30:00"), headers=doctor_user["headers"]
    )
    assert no_profile.status_code == 404
    assert no_profile.json()["error"] == "Doctor profile not found"


@pytest.mark.asyncio
async def test_admin_creates_slot_for_doctor(
    client: AsyncClient,
    admin: dict,
    doctor: dict,
) -> None:
    """Admins name the doctor explicitly."""
    without_doctor = await client.post(
        "/api/slots", json=slot_payload("09:00:00", "09:30:00"), headers=admin["headers"]
    )
    assert without_doctor.status_code == 400
    assert without_doctor.json()["errors"][0]["field"] == "doctorId"

    response = await client.post(
        "/api/slots",
        json={**slot_payload("09:00:00", "09:30:00"), "doctorId": str(doctor["id"])},
        headers=admin["headers"],
    )
    assert response.status_code == 201
    assert response.json()["data"]["doctor_id"] == str(doctor["id"])
    assert response.json()["data"]["created_by"] == str(admin["id"])


@pytest.mark.asyncio
async def test_delete_slot(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    other_doctor: dict,
    slot: dict,
) -> None:
    """Only the owner deletes an unbooked slot."""
    foreign = await client.delete(f"/api/slots/{slot['id']}", headers=other_doctor["headers"])
    assert foreign.status_code == 403

    response = await client.delete(f"/api/slots/{slot['id']}", headers=doctor["headers"])
    assert response.status_code == 200
    assert response.json()["message"] == "Slot deleted successfully"

    result = await db_session.execute(
        select(availability_slots.c.id).where(availability_slots.c.id == slot["id"])
    )
    assert result.first() is None

    again = await client.delete(f"/api/slots/{slot['id']}", headers=doctor["headers"])
    assert again.status_code == 404
    assert again.json()["error"] == "Slot not found"


@pytest.mark.asyncio
async def test_delete_booked_slot(client: AsyncClient, doctor: dict, consultation: dict) -> None:
    """Booked slots cannot be deleted."""
    response = await client.delete(
        f"/api/slots/{consultation['slot_id']}", headers=doctor["headers"]
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot delete a booked slot"


@pytest.mark.asyncio
async def test_update_slot(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    other_doctor: dict,
    slot: dict,
) -> None:
    """Owners move and block slots; overlaps and reversed intervals are refused."""
    await create_slot(db_session, doctor, start=time(10, 0), end=time(10, 30))

    foreign = await client.put(
        f"/api/slots/{slot['id']}", json={"status": "blocked"}, headers=other_doctor["headers"]
    )
    assert foreign.status_code == 403

    overlap = await client.put(
        f"/api/slots/{slot['id']}",
        json={"startTime": "10:15:00", "endTime": "10:45:00"},
        headers=doctor["headers"],
    )
    assert overlap.status_code == 409

    reversed_times = await client.put(
        f"/api/slots/{slot['id']}", json={"endTime": "08:00:00"}, headers=doctor["headers"]
    )
    assert reversed_times.status_code == 400
    assert reversed_times.json()["errors"][0]["field"] == "endTime"

    moved = await client.put(
        f"/api/slots/{slot['id']}",
        json={"startTime": "11:00:00", "endTime": "11:30:00", "status": "blocked"},
        headers=doctor["headers"],
    )
    assert moved.status_code == 200
    assert moved.json()["data"]["start_time"] == "11:00:00"
    assert moved.json()["data"]["status"] == "blocked"


@pytest.mark.asyncio
async def test_update_slot_booking_is_reserved(
    client: AsyncClient,
    doctor: dict,
    slot: dict,
    consultation: dict,
) -> None:
    """Booked slots are frozen and 'booked' cannot be set by hand."""
    booked = await client.put(
        f"/api/slots/{slot['id']}", json={"status": "available"}, headers=doctor["headers"]
    )
    assert booked.status_code == 400


@pytest.mark.asyncio
async def test_cannot_mark_slot_booked(client: AsyncClient, doctor: dict, slot: dict) -> None:
    """Only booking moves a slot to booked."""
    response = await client.put(
        f"/api/slots/{slot['id']}", json={"status": "booked"}, headers=doctor["headers"]
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_available_slots(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    doctor: dict,
) -> None:
    """Only available slots from today onward, ordered by date and time."""
    later = await create_slot(db_session, doctor, days_ahead=2, start=time(8), end=time(8, 30))
    earlier = await create_slot(db_session, doctor, days_ahead=1, start=time(14), end=time(14, 30))
    await create_slot(
        db_session, doctor, days_ahead=1, start=time(9), end=time(9, 30), status="blocked"
    )
    await create_slot(db_session, doctor, days_ahead=-1, start=time(9), end=time(9, 30))

    response = await client.get(
        f"/api/slots/doctor/{doctor['id']}/available", headers=patient["headers"]
    )
    assert response.status_code == 200
    assert [s["id"] for s in response.json()["data"]] == [str(earlier["id"]), str(later["id"])]

    bounded = await client.get(
        f"/api/slots/doctor/{doctor['id']}/available",
        params={"endDate": earlier["slot_date"].isoformat()},
        headers=patient["headers"],
    )
    assert [s["id"] for s in bounded.json()["data"]] == [str(earlier["id"])]


@pytest.mark.asyncio
async def test_doctor_slots_paginated(
    client: AsyncClient,
    db_session: AsyncSession,
    patient: dict,
    doctor: dict,
) -> None:
    """All statuses are listed with pagination metadata."""
    for hour in range(8, 13):
        await create_slot(db_session, doctor, start=time(hour), end=time(hour, 30))
    await create_slot(db_session, doctor, start=time(13), end=time(13, 30), status="blocked")

    response = await client.get(
        f"/api/slots/doctor/{doctor['id']}",
        params={"page": 2, "limit": 4},
        headers=patient["headers"],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"page": 2, "limit": 4, "total": 6, "totalPages": 2}
    assert [s["start_time"] for s in body["data"]] == ["12:00:00", "13:00:00"]


@pytest.mark.asyncio
async def test_my_slots(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    other_doctor: dict,
) -> None:
    """Doctors see their own upcoming slots with a default limit of 20."""
    mine = await create_slot(db_session, doctor)
    await create_slot(db_session, doctor, days_ahead=-3)
    await create_slot(db_session, other_doctor)

    response = await client.get("/api/slots/my-slots", headers=doctor["headers"])
    assert response.status_code == 200
    body = response.json()
    assert [s["id"] for s in body["data"]] == [str(mine["id"])]
    assert body["pagination"]["limit"] == 20


@pytest.mark.asyncio
async def test_pagination_limits(client: AsyncClient, patient: dict, doctor: dict) -> None:
    """Limit above 100 or page below 1 is rejected."""
    response = await client.get(
        f"/api/slots/doctor/{doctor['id']}",
        params={"limit": 101},
        headers=patient["headers"],
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "limit"

    response = await client.get(
        f"/api/slots/doctor/{doctor['id']}",
        params={"page": 0},
        headers=patient["headers"],
    )
    assert response.status_code == 400
