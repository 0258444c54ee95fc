"""Medicine catalogue service."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from telemed.core.exceptions import ConflictException, InvalidStateException, NotFoundException
from telemed.database import transaction
from telemed.models.prescriptions import medicines, prescription_items
from telemed.schemas.common import Page
from telemed.schemas.medicines import MedicineCreate, MedicineUpdate

logger = structlog.get_logger()

NAME_TAKEN = "Medicine with this name already exists"


class MedicineService:
    """Service for the medicine catalogue."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _name_taken(self, name: str, exclude_id: UUID | None = None) -> bool:
        query = select(medicines.c.id).where(medicines.c.name == name)
        if exclude_id is not None:
            query = query.where(medicines.c.id != exclude_id)
        result = await self.db.execute(query)
        return result.first() is not None

    async def create_medicine(self, actor: dict[str, Any], data: MedicineCreate) -> dict:
        """
        Add a medicine to the catalogue.

        Raises:
            ConflictException: If the name is already used
        """
        if await self._name_taken(data.name):
            raise ConflictException(NAME_TAKEN)

        try:
            async with transaction(self.db):
                result = await self.db.execute(
                    insert(medicines)
                    .values(**data.model_dump(), created_by=actor["id"])
                    .returning(medicines)
                )
                medicine = dict(result.mappings().one())
        except IntegrityError as e:
            raise ConflictException(NAME_TAKEN) from e

        logger.info("medicine_created", medicine_id=str(medicine["id"]), name=medicine["name"])
        return medicine

    async def list_medicines(
        self,
        page: Page,
        search: str | None = None,
        in_stock: bool | None = None,
    ) -> tuple[list[dict], int]:
        """
        List medicines ordered by name.

        Args:
            page: Page and limit
            search: Case-insensitive match on name or generic name
            in_stock: Stock filter

        Returns:
            Tuple of (rows, total count)
        """
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(medicines.c.name.ilike(pattern), medicines.c.generic_name.ilike(pattern))
            )
        if in_stock is not None:
            conditions.append(medicines.c.in_stock == in_stock)

        count_query = select(func.count()).select_from(medicines).where(*conditions)
        total = (await self.db.execute(count_query)).scalar_one()

        result = await self.db.execute(
            select(medicines)
            .where(*conditions)
            .order_by(medicines.c.name)
            .limit(page.limit)
            .offset(page.offset)
        )
        return [dict(row) for row in result.mappings().all()], total

    async def get_medicine(self, medicine_id: UUID) -> dict:
        """Get a medicine by ID or raise NotFoundException."""
        result = await self.db.execute(select(medicines).where(medicines.c.id == medicine_id))
        medicine = result.mappings().first()
        if not medicine:
            raise NotFoundException("Medicine not found")
        return dict(medicine)

    async def update_medicine(self, medicine_id: UUID, data: MedicineUpdate) -> dict:
        """
        Partially update a medicine.

        Raises:
            NotFoundException: If the medicine does not exist
            ConflictException: If renamed onto an existing name
        """
        medicine = await self.get_medicine(medicine_id)

        update_values = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_values:
            return medicine

        if "name" in update_values and await self._name_taken(
            update_values["name"], exclude_id=medicine_id
        ):
            raise ConflictException(NAME_TAKEN)

        try:
            async with transaction(self.db):
                result = await self.db.execute(
                    update(medicines)
                    .where(medicines.c.id == medicine_id)
                    .values(**update_values)
                    .returning(medicines)
                )
                updated = dict(result.mappings().one())
        except IntegrityError as e:
            raise ConflictException(NAME_TAKEN) from e

        return updated

    async def set_stock(self, medicine_id: UUID, in_stock: bool) -> dict:
        """Mark a medicine in or out of stock."""
        async with transaction(self.db):
            result = await self.db.execute(
                update(medicines)
                .where(medicines.c.id == medicine_id)
                .values(in_stock=in_stock)
                .returning(medicines)
            )
            medicine = result.mappings().first()
            if not medicine:
                raise NotFoundException("Medicine not found")

        return dict(medicine)

    async def delete_medicine(self, medicine_id: UUID) -> None:
        """
        Remove a medicine that no prescription refers to.

        Raises:
            NotFoundException: If the medicine does not exist
            InvalidStateException: If a prescription item references it
        """
        await self.get_medicine(medicine_id)

        used = await self.db.execute(
            select(prescription_items.c.id)
            .where(prescription_items.c.medicine_id == medicine_id)
            .limit(1)
        )
        if used.first() is not None:
            raise InvalidStateException("Cannot delete medicine that is used in prescriptions")

        try:
            async with transaction(self.db):
                await self.db.execute(delete(medicines).where(medicines.c.id == medicine_id))
        except IntegrityError as e:
            raise InvalidStateException(
                "Cannot delete medicine that is used in prescriptions"
            ) from e

        logger.info("medicine_deleted", medicine_id=str(medicine_id))
