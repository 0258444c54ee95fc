"""Doctor profile endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from telemed.dependencies import (
    AdminUser,
    CurrentUser,
    DatabaseSession,
    DoctorOrAdminUser,
    DoctorUser,
    pagination,
)
from telemed.schemas.common import ApiResponse, Page, PaginatedResponse, paginate
from telemed.schemas.doctors import (
    DoctorCreate,
    DoctorDetailResponse,
    DoctorResponse,
    DoctorStatsResponse,
    DoctorUpdate,
    DoctorVerificationRequest,
)
from telemed.services.doctor_service import DoctorService

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[DoctorResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create doctor profile",
)
async def create_doctor_profile(
    data: DoctorCreate,
    current_user: DoctorOrAdminUser,
    db: DatabaseSession,
) -> ApiResponse[DoctorResponse]:
    """
    Create a doctor profile for the caller, or for ``userId`` when called by an admin.

    Args:
        data: Doctor profile fields
        current_user: Authenticated doctor or admin
        db: Database session

    Returns:
        Created doctor profile
    """
    doctor = await DoctorService(db).create_doctor(current_user, data)
    return ApiResponse[DoctorResponse](message="Doctor profile created successfully", data=doctor)


@router.get(
    "",
    response_model=PaginatedResponse[DoctorDetailResponse],
    status_code=status.HTTP_200_OK,
    summary="List doctors",
)
async def list_doctors(
    current_user: CurrentUser,
    db: DatabaseSession,
    page: Annotated[Page, Depends(pagination(10))],
    specialization: str | None = Query(None),
    verified: bool | None = Query(None),
) -> PaginatedResponse[DoctorDetailResponse]:
    """
    List doctors, best rated first.

    Args:
        current_user: Authenticated user
        db: Database session
        page: Page and limit
        specialization: Case-insensitive substring filter
        verified: Verification filter

    Returns:
        Paginated doctors with user details
    """
    items, total = await DoctorService(db).list_doctors(page, specialization, verified)
    return PaginatedResponse[DoctorDetailResponse](**paginate(items, page, total))


@router.get(
    "/my-stats",
    response_model=ApiResponse[DoctorStatsResponse],
    status_code=status.HTTP_200_OK,
    summary="Consultation statistics of the calling doctor",
)
async def get_my_stats(
    current_user: DoctorUser,
    db: DatabaseSession,
) -> ApiResponse[DoctorStatsResponse]:
    """Consultation counts by status and today's consultations."""
    stats = await DoctorService(db).get_stats(current_user["id"])
    return ApiResponse[DoctorStatsResponse](data=stats)


@router.get(
    "/{doctor_id}",
    response_model=ApiResponse[DoctorDetailResponse],
    status_code=status.HTTP_200_OK,
    summary="Get doctor by ID",
)
async def get_doctor(
    doctor_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse[DoctorDetailResponse]:
    """Get a doctor with the owning user's public details."""
    doctor = await DoctorService(db).get_doctor_detail(doctor_id)
    return ApiResponse[DoctorDetailResponse](data=doctor)


@router.put(
    "/{doctor_id}",
    response_model=ApiResponse[DoctorResponse],
    status_code=status.HTTP_200_OK,
    summary="Update doctor profile",
)
async def update_doctor_profile(
    doctor_id: UUID,
    data: DoctorUpdate,
    current_user: DoctorOrAdminUser,
    db: DatabaseSession,
) -> ApiResponse[DoctorResponse]:
    """Partially update a doctor profile; doctors may only edit their own."""
    doctor = await DoctorService(db).update_doctor(current_user, doctor_id, data)
    return ApiResponse[DoctorResponse](message="Doctor profile updated successfully", data=doctor)


@router.put(
    "/{doctor_id}/verify",
    response_model=ApiResponse[DoctorResponse],
    status_code=status.HTTP_200_OK,
    summary="Verify doctor",
)
async def verify_doctor(
    doctor_id: UUID,
    data: DoctorVerificationRequest,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse[DoctorResponse]:
    """Set or clear the verification flag of a doctor (admin only)."""
    doctor = await DoctorService(db).set_verified(doctor_id, data.is_verified)
    message = "Doctor verified successfully" if data.is_verified else "Doctor unverified"
    return ApiResponse[DoctorResponse](message=message, data=doctor)
