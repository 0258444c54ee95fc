"""Tests for prescription endpoints."""

import pytest
import pytest_asyncio
from conftest import create_medicine
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.models.prescriptions import prescription_items, prescriptions


def prescription_payload(consultation: dict, *medicines: dict) -> dict:
    """Prescription body with one item per medicine."""
    return {
        "consultationId": consultation["id"],
        "notes": "Review in a week",
        "items": [
            {
                "medicineId": str(medicine["id"]),
                "dosage": "1 tablet",
                "frequency": "twice daily",
                "durationDays": 5,
                "instructions": "After food",
            }
            for medicine in medicines
        ],
    }


async def row_counts(db: AsyncSession) -> tuple[int, int]:
    """Number of prescriptions and prescription items."""
    header = await db.execute(select(func.count()).select_from(prescriptions))
    lines = await db.execute(select(func.count()).select_from(prescription_items))
    return header.scalar_one(), lines.scalar_one()


@pytest_asyncio.fixture
async def ongoing(consultation: dict, set_status) -> dict:
    """The fixture consultation moved to ongoing."""
    response = await set_status(consultation["id"], "ongoing")
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.asyncio
async def test_create_prescription(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    patient: dict,
    ongoing: dict,
) -> None:
    """A prescription with its items is issued once per consultation."""
    paracetamol = await create_medicine(db_session, "Paracetamol")
    cetirizine = await create_medicine(db_session, "Cetirizine")

    response = await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, paracetamol, cetirizine),
        headers=doctor["headers"],
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Prescription created successfully"
    data = body["data"]
    assert data["consultation_id"] == ongoing["id"]
    assert data["doctor_id"] == str(doctor["id"])
    assert data["patient_id"] == str(patient["id"])
    assert data["notes"] == "Review in a week"
    assert {item["medicine"]["name"] for item in data["items"]} == {"Paracetamol", "Cetirizine"}
    assert data["items"][0]["medicine"]["price"] == 12.5
    assert data["items"][0]["duration_days"] == 5

    again = await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, paracetamol),
        headers=doctor["headers"],
    )
    assert again.status_code == 409
    assert again.json()["error"] == "Prescription already exists for this consultation"
    assert await row_counts(db_session) == (1, 2)


@pytest.mark.asyncio
async def test_prescribe_for_completed_consultation(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    ongoing: dict,
    set_status,
) -> None:
    """Completed consultations can still be prescribed for."""
    assert (await set_status(ongoing["id"], "completed")).status_code == 200
    medicine = await create_medicine(db_session, "Ibuprofen")

    response = await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, medicine),
        headers=doctor["headers"],
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_scheduled_consultation_rejected(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    consultation: dict,
) -> None:
    """A consultation that has not started cannot be prescribed for."""
    medicine = await create_medicine(db_session, "Paracetamol")
    response = await client.post(
        "/api/prescriptions",
        json=prescription_payload(consultation, medicine),
        headers=doctor["headers"],
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Can only prescribe for ongoing or completed consultations"


@pytest.mark.asyncio
async def test_out_of_stock_medicines(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    ongoing: dict,
) -> None:
    """Out-of-stock medicines are named and nothing is written."""
    available = await create_medicine(db_session, "Paracetamol")
    gone = await create_medicine(db_session, "Amoxicillin", in_stock=False)
    also_gone = await create_medicine(db_session, "Azithromycin", in_stock=False)

    response = await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, available, gone, also_gone, gone),
        headers=doctor["headers"],
    )
    assert response.status_code == 400
    assert response.json()["error"] == (
        "Following medicines are out of stock: Amoxicillin, Azithromycin"
    )
    assert await row_counts(db_session) == (0, 0)


@pytest.mark.asyncio
async def test_unknown_medicine(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    ongoing: dict,
) -> None:
    """Unknown medicine ids are a 404 and nothing is written."""
    known = await create_medicine(db_session, "Paracetamol")
    response = await client.post(
        "/api/prescriptions",
        json=prescription_payload(
            ongoing, known, {"id": "7b0f7d5e-2a52-4c55-9d2e-1b1f1f3f0a11"}
        ),
        headers=doctor["headers"],
    )
    assert response.status_code == 404
    assert response.json()["error"] == "One or more medicines not found"
    assert await row_counts(db_session) == (0, 0)


@pytest.mark.asyncio
async def test_other_doctor_cannot_prescribe(
    client: AsyncClient,
    db_session: AsyncSession,
    other_doctor: dict,
    patient: dict,
    ongoing: dict,
) -> None:
    """Only the consultation's doctor prescribes; patients are refused outright."""
    medicine = await create_medicine(db_session, "Paracetamol")

    foreign = await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, medicine),
        headers=other_doctor["headers"],
    )
    assert foreign.status_code == 403
    assert foreign.json()["error"] == "You can only prescribe for your own consultations"

    as_patient = await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, medicine),
        headers=patient["headers"],
    )
    assert as_patient.status_code == 403


@pytest.mark.asyncio
async def test_prescription_validation(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    ongoing: dict,
) -> None:
    """At least one item, and durations of at least a day."""
    empty = await client.post(
        "/api/prescriptions",
        json={"consultationId": ongoing["id"], "items": []},
        headers=doctor["headers"],
    )
    assert empty.status_code == 400
    assert empty.json()["errors"][0]["field"] == "items"

    medicine = await create_medicine(db_session, "Paracetamol")
    payload = prescription_payload(ongoing, medicine)
    payload["items"][0]["durationDays"] = 0
    zero_days = await client.post("/api/prescriptions", json=payload, headers=doctor["headers"])
    assert zero_days.status_code == 400
    assert zero_days.json()["errors"][0]["field"] == "items.0.durationDays"


@pytest.mark.asyncio
async def test_get_prescription_by_consultation(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    patient: dict,
    other_patient: dict,
    admin: dict,
    ongoing: dict,
) -> None:
    """Participants and admins read the prescription with names and consultation."""
    missing = await client.get(
        f"/api/prescriptions/consultation/{ongoing['id']}", headers=patient["headers"]
    )
    assert missing.status_code == 404
    assert missing.json()["error"] == "Prescription not found"

    medicine = await create_medicine(db_session, "Paracetamol")
    created = await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, medicine),
        headers=doctor["headers"],
    )
    assert created.status_code == 201

    for reader in (patient, doctor, admin):
        response = await client.get(
            f"/api/prescriptions/consultation/{ongoing['id']}", headers=reader["headers"]
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["doctor"]["first_name"] == "Dana"
        assert data["patient"]["first_name"] == "Pat"
        assert data["consultation"]["status"] == "ongoing"
        assert data["consultation"]["chief_complaint"] == "Chest pain"
        assert data["items"][0]["medicine"]["name"] == "Paracetamol"

    stranger = await client.get(
        f"/api/prescriptions/consultation/{ongoing['id']}", headers=other_patient["headers"]
    )
    assert stranger.status_code == 403
    assert stranger.json()["error"] == "You do not have permission to view this prescription"


@pytest.mark.asyncio
async def test_my_prescriptions(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    patient: dict,
    other_patient: dict,
    ongoing: dict,
) -> None:
    """Patients list their own prescriptions only."""
    medicine = await create_medicine(db_session, "Paracetamol")
    await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, medicine),
        headers=doctor["headers"],
    )

    mine = await client.get("/api/prescriptions/my-prescriptions", headers=patient["headers"])
    assert mine.status_code == 200
    assert [p["consultation_id"] for p in mine.json()["data"]] == [ongoing["id"]]

    theirs = await client.get(
        "/api/prescriptions/my-prescriptions", headers=other_patient["headers"]
    )
    assert theirs.json()["data"] == []

    as_doctor = await client.get(
        "/api/prescriptions/my-prescriptions", headers=doctor["headers"]
    )
    assert as_doctor.status_code == 403


@pytest.mark.asyncio
async def test_consultation_detail_includes_prescription(
    client: AsyncClient,
    db_session: AsyncSession,
    doctor: dict,
    patient: dict,
    ongoing: dict,
) -> None:
    """The consultation view embeds its prescription."""
    medicine = await create_medicine(db_session, "Paracetamol")
    await client.post(
        "/api/prescriptions",
        json=prescription_payload(ongoing, medicine),
        headers=doctor["headers"],
    )

    response = await client.get(f"/api/consultations/{ongoing['id']}", headers=patient["headers"])
    assert response.status_code == 200
    prescription = response.json()["data"]["prescription"]
    assert prescription["notes"] == "Review in a week"
    assert prescription["items"][0]["medicine"]["name"] == "Paracetamol"
