"""
Mutation Gateway

Validates operator changes to a unit before they reach the unit store:
guided actions follow the transition table below, direct field edits may
overwrite status but never move a feed-sold unit off "sold". Every
successful mutation invalidates cached unit queries (through the store)
and is announced to connected dashboards over SSE.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.lib.cache import QueryCache
from inventory_api.lib.clock import utcnow
from inventory_api.lib.config import settings
from inventory_api.lib.errors import InvalidTransitionError, UnitNotFoundError
from inventory_api.lib.sse import UNITS_CHANNEL, SSEManager
from inventory_api.models.unit import Unit
from inventory_api.schemas.sales_feed import SoldUnitInfo
from inventory_api.schemas.unit import (
    UnitAction,
    UnitActionRequest,
    UnitResponse,
    UnitStatus,
    UnitUpdate,
)
from inventory_api.services.hold_expiry import annotate_hold, hold_expiry_for
from inventory_api.services.reconciliation import effective_status, feed_key, merge_unit
from inventory_api.services.sales_feed import SalesFeedService
from inventory_api.services.unit_store import UnitStore

logger = logging.getLogger(__name__)

# (effective status, action) -> resulting status
TRANSITIONS: Dict[Tuple[UnitStatus, UnitAction], UnitStatus] = {
    (UnitStatus.AVAILABLE, UnitAction.RESERVE_TEMPORARY): UnitStatus.RESERVED,
    (UnitStatus.AVAILABLE, UnitAction.RESERVE_PERMANENT): UnitStatus.RESERVED,
    (UnitStatus.AVAILABLE, UnitAction.SELL): UnitStatus.SOLD,
    (UnitStatus.RESERVED, UnitAction.CANCEL_HOLD): UnitStatus.AVAILABLE,
    (UnitStatus.RESERVED, UnitAction.REVERT_TO_AVAILABLE): UnitStatus.AVAILABLE,
    (UnitStatus.RESERVED, UnitAction.SELL): UnitStatus.SOLD,
}

DETAIL_FIELDS = ("buyer_name", "buyer_phone", "sales_employee", "accountant_name", "notes")

UNIT_UPDATED_EVENT = "unit_updated"


def allowed_actions(status: UnitStatus) -> List[UnitAction]:
    """Guided actions offered for a unit in the given effective status."""
    return [action for (source, action) in TRANSITIONS if source == status]


class UnitMutationGateway:
    def __init__(
        self,
        db: AsyncSession,
        sales_feed: Optional[SalesFeedService] = None,
        cache: Optional[QueryCache] = None,
        sse: Optional[SSEManager] = None,
        hold_hours: Optional[int] = None,
    ):
        self.store = UnitStore(db, cache)
        self.sales_feed = sales_feed
        self.sse = sse
        self.hold_hours = settings.reservation_hold_hours if hold_hours is None else hold_hours

    async def _sold_feed(self) -> Tuple[Mapping[str, SoldUnitInfo], bool]:
        """Current sold-units map and whether it reflects a successful fetch."""
        if self.sales_feed is None:
            return {}, False

        snapshot = await self.sales_feed.get_snapshot()
        return snapshot.sold_units, snapshot.available

    async def _load(self, unit_id: UUID) -> Unit:
        unit = await self.store.get_unit(unit_id)
        if not unit:
            raise UnitNotFoundError(unit_id)
        return unit

    async def apply_action(
        self,
        unit_id: UUID,
        request: UnitActionRequest,
        now: Optional[datetime] = None,
    ) -> UnitResponse:
        """
        Apply a guided transition.

        The action is checked against the unit's effective status, so a
        unit the feed reports sold accepts no action at all.
        """
        now = now or utcnow()
        unit = await self._load(unit_id)
        sold_feed, _ = await self._sold_feed()

        current = effective_status(unit, sold_feed)
        target = TRANSITIONS.get((current, request.action))

        if target is None:
            logger.warning(
                f"Rejected {request.action.value} on unit {unit.id} "
                f"(block {unit.block_number} #{unit.unit_number}): status is {current.value}"
            )
            raise InvalidTransitionError(
                f"Cannot {request.action.value} unit {unit.unit_number} "
                f"in block {unit.block_number} while it is {current.value}"
            )

        fields: Dict[str, Any] = {"status": target.value, "reservation_expires_at": None}
        if request.action == UnitAction.RESERVE_TEMPORARY:
            fields["reservation_expires_at"] = hold_expiry_for(now, self.hold_hours)

        for field in DETAIL_FIELDS:
            value = getattr(request, field)
            if value is not None:
                fields[field] = value

        updated = await self.store.update_unit(unit_id, fields, request.expected_updated_at)

        logger.info(
            f"Unit {updated.id} {request.action.value}: {current.value} -> {target.value}"
        )
        return await self._after_mutation(updated, sold_feed, now, action=request.action.value)

    async def edit_fields(
        self,
        unit_id: UUID,
        update: UnitUpdate,
        now: Optional[datetime] = None,
    ) -> UnitResponse:
        """
        Apply a direct field edit.

        Any status may be written, except that a unit present in the sales
        feed cannot be moved away from sold.
        """
        fields = update.model_dump(exclude_unset=True, exclude={"expected_updated_at"})
        if "status" in fields and fields["status"] is not None:
            fields["status"] = UnitStatus(fields["status"]).value

        unit = await self._load(unit_id)
        sold_feed, feed_available = await self._sold_feed()
        current = effective_status(unit, sold_feed)

        new_status = fields.get("status")
        if new_status is not None and new_status != UnitStatus.SOLD.value:
            if feed_key(unit.unit_number) in sold_feed:
                logger.warning(
                    f"Rejected status edit on feed-sold unit {unit.id} "
                    f"(block {unit.block_number} #{unit.unit_number}) to {new_status}"
                )
                raise InvalidTransitionError(
                    f"Unit {unit.unit_number} is recorded sold by the sales feed "
                    f"and cannot be set to {new_status}"
                )
            if not feed_available and self.sales_feed is not None and self.sales_feed.enabled:
                logger.warning(
                    f"Sales feed unavailable; status edit on unit {unit.id} "
                    f"not checked against feed sales"
                )

        updated = await self.store.update_unit(unit_id, fields, update.expected_updated_at)

        if new_status is not None and new_status != current.value:
            logger.info(f"Unit {updated.id} edited: {current.value} -> {new_status}")

        return await self._after_mutation(updated, sold_feed, now or utcnow(), action="edit")

    async def _after_mutation(
        self,
        unit: Unit,
        sold_feed: Mapping[str, SoldUnitInfo],
        now: datetime,
        action: str,
    ) -> UnitResponse:
        view = annotate_hold(merge_unit(UnitResponse.model_validate(unit), sold_feed), now)

        if self.sse is not None:
            await self.sse.publish(
                UNITS_CHANNEL,
                UNIT_UPDATED_EVENT,
                {
                    "unit_id": str(view.id),
                    "unit_number": view.unit_number,
                    "block_number": view.block_number,
                    "status": view.status.value,
                    "action": action,
                },
            )

        return view
