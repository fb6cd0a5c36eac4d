"""
Inventory read side.

Loads units from the store and the sales feed snapshot concurrently,
merges them, annotates holds and derives stats. Everything here is
recomputed per request; only the store query result and the feed
snapshot are cached.
"""
import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.lib.cache import QueryCache
from inventory_api.lib.clock import utcnow
from inventory_api.lib.config import settings
from inventory_api.lib.errors import UnitNotFoundError
from inventory_api.schemas.sales_feed import FeedSnapshot
from inventory_api.schemas.unit import (
    BlockGridResponse,
    UnitFilters,
    UnitListResponse,
    UnitResponse,
    UnitStatsResponse,
    UnitStatus,
)
from inventory_api.services.hold_expiry import annotate_hold
from inventory_api.services.reconciliation import merge_unit, merge_units
from inventory_api.services.sales_feed import SalesFeedService
from inventory_api.services.stats import apply_filters, compute_stats, summarize_blocks
from inventory_api.services.unit_store import UNITS_ENTITY, UnitStore

logger = logging.getLogger(__name__)

# A feed override can only remove rows from these filters, so they are
# safe to apply in the store before merging.
PUSHDOWN_STATUSES = {UnitStatus.AVAILABLE, UnitStatus.RESERVED}


def store_filters(filters: UnitFilters) -> UnitFilters:
    """The subset of filters that can run in the store without losing feed-sold rows."""
    status = filters.status if filters.status in PUSHDOWN_STATUSES else None
    return filters.model_copy(update={"status": status})


class InventoryService:
    def __init__(
        self,
        db: AsyncSession,
        sales_feed: Optional[SalesFeedService] = None,
        cache: Optional[QueryCache] = None,
        block_count: Optional[int] = None,
    ):
        self.store = UnitStore(db, cache)
        self.cache = cache
        self.sales_feed = sales_feed
        self.block_count = settings.block_count if block_count is None else block_count

    async def _query_units(self, filters: UnitFilters) -> List[UnitResponse]:
        async def load() -> List[UnitResponse]:
            units = await self.store.list_units(filters)
            return [UnitResponse.model_validate(unit) for unit in units]

        if self.cache is None:
            return await load()

        return await self.cache.get_or_load(
            UNITS_ENTITY, filters, load, ttl=settings.units_cache_seconds
        )

    async def _snapshot(self) -> FeedSnapshot:
        if self.sales_feed is None:
            return FeedSnapshot(enabled=False, error="Sales feed not configured")
        return await self.sales_feed.get_snapshot()

    async def load_merged(
        self,
        filters: Optional[UnitFilters] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[List[UnitResponse], FeedSnapshot]:
        """
        Merged and hold-annotated units for the given filters, with the
        feed snapshot used.

        The store query and the feed fetch run concurrently; the merge runs
        once both are back. Filters are applied again on the merged status.
        """
        filters = filters or UnitFilters()
        now = now or utcnow()

        units, snapshot = await asyncio.gather(
            self._query_units(store_filters(filters)),
            self._snapshot(),
        )

        if snapshot.enabled and snapshot.error:
            logger.warning(f"Merging without fresh sales feed data: {snapshot.error}")

        merged = [annotate_hold(unit, now) for unit in merge_units(units, snapshot.sold_units)]
        return apply_filters(merged, filters), snapshot

    async def _unfiltered(
        self,
        filters: UnitFilters,
        units: List[UnitResponse],
        now: Optional[datetime],
    ) -> List[UnitResponse]:
        # Stats never follow the UI filters. The session runs one query at
        # a time, so this load is sequential.
        if filters == UnitFilters():
            return units
        everything, _ = await self.load_merged(UnitFilters(), now)
        return everything

    async def list_units(
        self,
        filters: Optional[UnitFilters] = None,
        now: Optional[datetime] = None,
    ) -> UnitListResponse:
        """Filtered unit list plus stats over the whole residential set."""
        filters = filters or UnitFilters()
        now = now or utcnow()

        units, snapshot = await self.load_merged(filters, now)
        everything = await self._unfiltered(filters, units, now)

        return UnitListResponse(
            units=units,
            total=len(units),
            stats=compute_stats(everything),
            feed=snapshot.status(),
        )

    async def get_stats(self, now: Optional[datetime] = None) -> UnitStatsResponse:
        units, snapshot = await self.load_merged(UnitFilters(), now)
        return UnitStatsResponse(stats=compute_stats(units), feed=snapshot.status())

    async def get_block_grid(
        self,
        filters: Optional[UnitFilters] = None,
        now: Optional[datetime] = None,
    ) -> BlockGridResponse:
        """Units grouped per block with per-block counts. Blocks left empty by the filters are omitted."""
        filters = filters or UnitFilters()
        units, snapshot = await self.load_merged(filters, now)
        everything = await self._unfiltered(filters, units, now)

        return BlockGridResponse(
            blocks=summarize_blocks(units, self.block_count),
            stats=compute_stats(everything),
            feed=snapshot.status(),
        )

    async def get_unit(self, unit_id: UUID, now: Optional[datetime] = None) -> UnitResponse:
        unit, snapshot = await asyncio.gather(
            self.store.get_unit(unit_id),
            self._snapshot(),
        )
        if not unit:
            raise UnitNotFoundError(unit_id)

        merged = merge_unit(UnitResponse.model_validate(unit), snapshot.sold_units)
        return annotate_hold(merged, now or utcnow())
