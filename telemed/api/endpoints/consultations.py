"""Consultation endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from telemed.dependencies import (
    CurrentUser,
    DatabaseSession,
    DoctorOrAdminUser,
    PatientUser,
    pagination,
)
from telemed.schemas.common import ApiResponse, Page, PaginatedResponse, paginate
from telemed.schemas.consultations import (
    ConsultationBook,
    ConsultationDetailResponse,
    ConsultationListItem,
    ConsultationResponse,
    ConsultationStatus,
    ConsultationUpdate,
)
from telemed.services.consultation_service import ConsultationService

router = APIRouter()


@router.post(
    "/book",
    response_model=ApiResponse[ConsultationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Book a consultation",
)
async def book_consultation(
    data: ConsultationBook,
    current_user: PatientUser,
    db: DatabaseSession,
) -> ApiResponse[ConsultationResponse]:
    """
    Book an available slot with a doctor.

    Args:
        data: Doctor, slot and chief complaint
        current_user: Authenticated patient
        db: Database session

    Returns:
        Created consultation
    """
    consultation = await ConsultationService(db).book(current_user, data)
    return ApiResponse[ConsultationResponse](
        message="Consultation booked successfully",
        data=consultation,
    )


@router.get(
    "/my-consultations",
    response_model=PaginatedResponse[ConsultationListItem],
    status_code=status.HTTP_200_OK,
    summary="List the caller's consultations",
)
async def get_my_consultations(
    current_user: CurrentUser,
    db: DatabaseSession,
    page: Annotated[Page, Depends(pagination(10))],
    status_filter: ConsultationStatus | None = Query(None, alias="status"),
) -> PaginatedResponse[ConsultationListItem]:
    """
    List consultations visible to the caller, newest first.

    Args:
        current_user: Authenticated user
        db: Database session
        page: Page and limit
        status_filter: Filter by status

    Returns:
        Paginated consultations with doctor and patient details
    """
    items, total = await ConsultationService(db).get_my_consultations(
        current_user, page, status_filter
    )
    return PaginatedResponse[ConsultationListItem](**paginate(items, page, total))


@router.get(
    "/{consultation_id}",
    response_model=ApiResponse[ConsultationDetailResponse],
    status_code=status.HTTP_200_OK,
    summary="Get consultation by ID",
)
async def get_consultation(
    consultation_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse[ConsultationDetailResponse]:
    """Get a consultation with participants and prescription."""
    consultation = await ConsultationService(db).get_consultation(current_user, consultation_id)
    return ApiResponse[ConsultationDetailResponse](data=consultation)


@router.put(
    "/{consultation_id}",
    response_model=ApiResponse[ConsultationResponse],
    status_code=status.HTTP_200_OK,
    summary="Update consultation",
)
async def update_consultation(
    consultation_id: UUID,
    data: ConsultationUpdate,
    current_user: DoctorOrAdminUser,
    db: DatabaseSession,
) -> ApiResponse[ConsultationResponse]:
    """Update status, diagnosis, notes or meeting link of a consultation."""
    consultation = await ConsultationService(db).update_consultation(
        current_user, consultation_id, data
    )
    return ApiResponse[ConsultationResponse](
        message="Consultation updated successfully",
        data=consultation,
    )


@router.put(
    "/{consultation_id}/cancel",
    response_model=ApiResponse[ConsultationResponse],
    status_code=status.HTTP_200_OK,
    summary="Cancel consultation",
)
async def cancel_consultation(
    consultation_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse[ConsultationResponse]:
    """Cancel a consultation and free its slot."""
    consultation = await ConsultationService(db).cancel(current_user, consultation_id)
    return ApiResponse[ConsultationResponse](
        message="Consultation cancelled successfully",
        data=consultation,
    )
