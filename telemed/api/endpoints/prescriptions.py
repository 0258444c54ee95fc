"""Prescription endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from telemed.dependencies import CurrentUser, DatabaseSession, DoctorUser, PatientUser
from telemed.schemas.common import ApiResponse
from telemed.schemas.prescriptions import (
    PrescriptionCreate,
    PrescriptionDetailResponse,
    PrescriptionResponse,
)
from telemed.services.prescription_service import PrescriptionService

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[PrescriptionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Issue a prescription",
)
async def create_prescription(
    data: PrescriptionCreate,
    current_user: DoctorUser,
    db: DatabaseSession,
) -> ApiResponse[PrescriptionResponse]:
    """
    Issue a prescription for one of the caller's consultations.

    Args:
        data: Consultation, notes and prescribed items
        current_user: Authenticated doctor
        db: Database session

    Returns:
        Created prescription with its items
    """
    prescription = await PrescriptionService(db).create_prescription(current_user, data)
    return ApiResponse[PrescriptionResponse](
        message="Prescription created successfully",
        data=prescription,
    )


@router.get(
    "/my-prescriptions",
    response_model=ApiResponse[list[PrescriptionDetailResponse]],
    status_code=status.HTTP_200_OK,
    summary="List the calling patient's prescriptions",
)
async def get_my_prescriptions(
    current_user: PatientUser,
    db: DatabaseSession,
) -> ApiResponse[list[PrescriptionDetailResponse]]:
    """List the caller's prescriptions, newest first."""
    prescriptions = await PrescriptionService(db).get_my_prescriptions(current_user["id"])
    return ApiResponse[list[PrescriptionDetailResponse]](data=prescriptions)


@router.get(
    "/consultation/{consultation_id}",
    response_model=ApiResponse[PrescriptionDetailResponse],
    status_code=status.HTTP_200_OK,
    summary="Get the prescription of a consultation",
)
async def get_prescription_by_consultation(
    consultation_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse[PrescriptionDetailResponse]:
    """Get a consultation's prescription; visible to its participants and admins."""
    prescription = await PrescriptionService(db).get_by_consultation(
        current_user, consultation_id
    )
    return ApiResponse[PrescriptionDetailResponse](data=prescription)
