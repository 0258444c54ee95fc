"""Medicine catalogue endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from telemed.dependencies import AdminUser, CurrentUser, DatabaseSession, pagination
from telemed.schemas.common import ApiResponse, Page, PaginatedResponse, paginate
from telemed.schemas.medicines import (
    MedicineCreate,
    MedicineResponse,
    MedicineStockUpdate,
    MedicineUpdate,
)
from telemed.services.medicine_service import MedicineService

router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[MedicineResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add medicine",
)
async def create_medicine(
    data: MedicineCreate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse[MedicineResponse]:
    """Add a medicine to the catalogue (admin only)."""
    medicine = await MedicineService(db).create_medicine(current_user, data)
    return ApiResponse[MedicineResponse](message="Medicine created successfully", data=medicine)


@router.get(
    "",
    response_model=PaginatedResponse[MedicineResponse],
    status_code=status.HTTP_200_OK,
    summary="List medicines",
)
async def list_medicines(
    current_user: CurrentUser,
    db: DatabaseSession,
    page: Annotated[Page, Depends(pagination(20))],
    search: str | None = Query(None),
    in_stock: bool | None = Query(None, alias="inStock"),
) -> PaginatedResponse[MedicineResponse]:
    """
    List medicines ordered by name.

    Args:
        current_user: Authenticated user
        db: Database session
        page: Page and limit
        search: Match on name or generic name
        in_stock: Stock filter

    Returns:
        Paginated medicines
    """
    items, total = await MedicineService(db).list_medicines(page, search, in_stock)
    return PaginatedResponse[MedicineResponse](**paginate(items, page, total))


@router.get(
    "/{medicine_id}",
    response_model=ApiResponse[MedicineResponse],
    status_code=status.HTTP_200_OK,
    summary="Get medicine by ID",
)
async def get_medicine(
    medicine_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> ApiResponse[MedicineResponse]:
    """Get a medicine by ID."""
    medicine = await MedicineService(db).get_medicine(medicine_id)
    return ApiResponse[MedicineResponse](data=medicine)


@router.put(
    "/{medicine_id}",
    response_model=ApiResponse[MedicineResponse],
    status_code=status.HTTP_200_OK,
    summary="Update medicine",
)
async def update_medicine(
    medicine_id: UUID,
    data: MedicineUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse[MedicineResponse]:
    """Partially update a medicine (admin only)."""
    medicine = await MedicineService(db).update_medicine(medicine_id, data)
    return ApiResponse[MedicineResponse](message="Medicine updated successfully", data=medicine)


@router.put(
    "/{medicine_id}/stock",
    response_model=ApiResponse[MedicineResponse],
    status_code=status.HTTP_200_OK,
    summary="Toggle medicine stock",
)
async def update_medicine_stock(
    medicine_id: UUID,
    data: MedicineStockUpdate,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse[MedicineResponse]:
    """Mark a medicine in or out of stock (admin only)."""
    medicine = await MedicineService(db).set_stock(medicine_id, data.in_stock)
    state = "in stock" if data.in_stock else "out of stock"
    return ApiResponse[MedicineResponse](message=f"Medicine marked as {state}", data=medicine)


@router.delete(
    "/{medicine_id}",
    response_model=ApiResponse[None],
    status_code=status.HTTP_200_OK,
    summary="Delete medicine",
)
async def delete_medicine(
    medicine_id: UUID,
    current_user: AdminUser,
    db: DatabaseSession,
) -> ApiResponse[None]:
    """Delete a medicine no prescription refers to (admin only)."""
    await MedicineService(db).delete_medicine(medicine_id)
    return ApiResponse[None](message="Medicine deleted successfully")
