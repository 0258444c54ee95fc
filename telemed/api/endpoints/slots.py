"""Availability slot endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from telemed.dependencies import (
    CurrentUser,
    DatabaseSession,
    DoctorOrAdminUser,
    DoctorUser,
    pagination,
)
from telemed.schemas.common import ApiResponse, Page, PaginatedResponse, paginate
from telemed.schemas.slots import SlotCreate, SlotResponse, SlotUpdate
from telemed.services.slot_service import SlotService

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[SlotResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create availability slot",
)
async def create_slot(
    data: SlotCreate,
    current_user: DoctorOrAdminUser,
    db: DatabaseSession,
) -> ApiResponse[SlotResponse]:
    """
    Create an available slot for the calling doctor.

    Admins create slots on behalf of a doctor by passing ``doctorId``.

    Args:
        data: Slot date and times
        current_user: Authenticated doctor or admin
        db: Database session

    Returns:
        Created slot
    """
    slot = await SlotService(db).create_slot(current_user, data)
    return ApiResponse[SlotResponse](message="Availability slot created successfully", data=slot)


@router.get(
    "/my-slots",
    response_model=PaginatedResponse[SlotResponse],
    status_code=status.HTTP_200_OK,
    summary="List the calling doctor's upcoming slots",
)
async def get_my_slots(
    current_user: DoctorUser,
    db: DatabaseSession,
    page: Annotated[Page, Depends(pagination(20))],
) -> PaginatedResponse[SlotResponse]:
    """List the caller's slots from today onward."""
    items, total = await SlotService(db).get_my_slots(current_user["id"], page)
    return PaginatedResponse[SlotResponse](**paginate(items, page, total))


@router.get(
    "/doctor/{doctor_id}/available",
    response_model=ApiResponse[list[SlotResponse]],
    status_code=status.HTTP_200_OK,
    summary="List available slots of a doctor",
)
async def get_available_slots(
    doctor_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
) -> ApiResponse[list[SlotResponse]]:
    """
    List bookable slots of a doctor.

    Args:
        doctor_id: Doctor ID
        current_user: Authenticated user
        db: Database session
        start_date: First date to include, today when omitted
        end_date: Last date to include

    Returns:
        Available slots ordered by date and start time
    """
    slots = await SlotService(db).get_available_slots(doctor_id, start_date, end_date)
    return ApiResponse[list[SlotResponse]](data=slots)


@router.get(
    "/doctor/{doctor_id}",
    response_model=PaginatedResponse[SlotResponse],
    status_code=status.HTTP_200_OK,
    summary="List all slots of a doctor",
)
async def get_doctor_slots(
    doctor_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    page: Annotated[Page, Depends(pagination(10))],
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
) -> PaginatedResponse[SlotResponse]:
    """List a doctor's slots in any status."""
    items, total = await SlotService(db).get_doctor_slots(doctor_id, page, start_date, end_date)
    return PaginatedResponse[SlotResponse](**paginate(items, page, total))


@router.put(
    "/{slot_id}",
    response_model=ApiResponse[SlotResponse],
    status_code=status.HTTP_200_OK,
    summary="Update availability slot",
)
async def update_slot(
    slot_id: UUID,
    data: SlotUpdate,
    current_user: DoctorOrAdminUser,
    db: DatabaseSession,
) -> ApiResponse[SlotResponse]:
    """Partially update a slot that is not booked."""
    slot = await SlotService(db).update_slot(current_user, slot_id, data)
    return ApiResponse[SlotResponse](message="Slot updated successfully", data=slot)


@router.delete(
    "/{slot_id}",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Delete availability slot",
)
async def delete_slot(
    slot_id: UUID,
    current_user: DoctorOrAdminUser,
    db: DatabaseSession,
) -> ApiResponse[None]:
    """Delete a slot that is not booked."""
    await SlotService(db).delete_slot(current_user, slot_id)
    return ApiResponse[None](message="Slot deleted successfully")
