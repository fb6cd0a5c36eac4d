"""
Unit Store

Persistent unit table access: filtered queries and single-row partial
updates that stamp updated_at.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.lib.cache import QueryCache
from inventory_api.lib.clock import as_naive_utc, utcnow
from inventory_api.lib.errors import (
    MutationConflictError,
    UnitNotFoundError,
    UnitValidationError,
)
from inventory_api.models.unit import Unit
from inventory_api.schemas.unit import UnitFilters, UnitStatus

logger = logging.getLogger(__name__)

UNITS_ENTITY = "units"

EDITABLE_FIELDS = {
    "price",
    "status",
    "buyer_name",
    "buyer_phone",
    "sales_employee",
    "accountant_name",
    "notes",
    "reservation_expires_at",
}


class UnitStore:
    """Queries and updates over the units table."""

    def __init__(self, db: AsyncSession, cache: Optional[QueryCache] = None):
        self.db = db
        self.cache = cache

    async def list_units(self, filters: Optional[UnitFilters] = None) -> List[Unit]:
        """
        List units matching the filters, ordered by unit number.

        Status and block are exact matches. Search matches a substring of
        the unit number, the block number exactly, or a case-insensitive
        substring of the buyer name.
        """
        filters = filters or UnitFilters()

        query = select(Unit)

        if filters.status is not None:
            query = query.where(Unit.status == filters.status.value)

        if filters.block is not None:
            query = query.where(Unit.block_number == filters.block)

        if filters.search:
            term = filters.search
            conditions = [
                cast(Unit.unit_number, String).contains(term, autoescape=True),
                Unit.buyer_name.icontains(term, autoescape=True),
            ]
            if term.isdigit():
                conditions.append(Unit.block_number == int(term))
            query = query.where(or_(*conditions))

        query = query.order_by(Unit.unit_number, Unit.created_at, Unit.block_number)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_unit(self, unit_id: UUID) -> Optional[Unit]:
        result = await self.db.execute(
            select(Unit).where(Unit.id == unit_id)
        )
        return result.scalar_one_or_none()

    async def update_unit(
        self,
        unit_id: UUID,
        fields: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
    ) -> Unit:
        """
        Apply a partial update and stamp updated_at.

        reservation_expires_at is cleared whenever the resulting status is
        not reserved. When expected_updated_at is given, the update is
        rejected if the stored row has changed since.
        """
        fields = dict(fields)
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise UnitValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

        if fields.get("price") is not None and fields["price"] < 0:
            raise UnitValidationError("Price must not be negative")

        if "price" in fields and fields["price"] is None:
            raise UnitValidationError("Price is required")

        if "status" in fields:
            try:
                fields["status"] = UnitStatus(fields["status"]).value
            except ValueError:
                raise UnitValidationError(f"Unknown status: {fields['status']}")

        unit = await self.get_unit(unit_id)
        if not unit:
            raise UnitNotFoundError(unit_id)

        if expected_updated_at is not None and as_naive_utc(expected_updated_at) != unit.updated_at:
            raise MutationConflictError(
                f"Unit {unit.block_number}/{unit.unit_number} was modified at "
                f"{unit.updated_at.isoformat()}; reload and retry"
            )

        for field, value in fields.items():
            if field == "reservation_expires_at":
                value = as_naive_utc(value)
            setattr(unit, field, value)

        if unit.status != UnitStatus.RESERVED.value:
            unit.reservation_expires_at = None

        unit.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(unit)

        logger.info(
            f"Updated unit {unit.id} (block {unit.block_number} #{unit.unit_number}): "
            f"fields={sorted(fields)} status={unit.status}"
        )

        if self.cache is not None:
            self.cache.invalidate(UNITS_ENTITY)

        return unit
