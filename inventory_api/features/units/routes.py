"""
Unit inventory endpoints.

Supports:
- Merged unit list with filters and whole-project stats
- Per-block grid view
- Unit detail
- Direct field edits and guided status actions (admin)
- Live change notifications via SSE
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.lib.cache import QueryCache
from inventory_api.lib.database import get_db
from inventory_api.lib.deps import (
    get_current_user,
    get_query_cache,
    get_sales_feed,
    get_sse_manager,
    require_admin,
)
from inventory_api.lib.sse import UNITS_CHANNEL, SSEManager, SSEMessage
from inventory_api.models.user import User
from inventory_api.schemas.unit import (
    BlockGridResponse,
    UnitActionRequest,
    UnitFilters,
    UnitListResponse,
    UnitResponse,
    UnitStatsResponse,
    UnitUpdate,
)
from inventory_api.services.inventory_service import InventoryService
from inventory_api.services.mutation_gateway import UnitMutationGateway
from inventory_api.services.sales_feed import SalesFeedService

router = APIRouter(prefix="/units", tags=["Units"])


def get_filters(
    search: str = Query("", description="Unit number, block number or buyer name"),
    status_filter: Optional[str] = Query(None, alias="status", description="available, reserved, sold or all"),
    block: Optional[str] = Query(None, description="Block number or all"),
) -> UnitFilters:
    try:
        return UnitFilters(search=search, status=status_filter, block=block)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )


def get_inventory_service(
    db: AsyncSession = Depends(get_db),
    sales_feed: SalesFeedService = Depends(get_sales_feed),
    cache: QueryCache = Depends(get_query_cache),
) -> InventoryService:
    return InventoryService(db, sales_feed=sales_feed, cache=cache)


def get_mutation_gateway(
    db: AsyncSession = Depends(get_db),
    sales_feed: SalesFeedService = Depends(get_sales_feed),
    cache: QueryCache = Depends(get_query_cache),
    sse: SSEManager = Depends(get_sse_manager),
) -> UnitMutationGateway:
    return UnitMutationGateway(db, sales_feed=sales_feed, cache=cache, sse=sse)


# ============================================
# READS
# ============================================

@router.get("", response_model=UnitListResponse)
async def list_units(
    filters: UnitFilters = Depends(get_filters),
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(get_current_user),
):
    """
    List units with the sales feed applied.

    Stats always cover every residential unit, whatever the filters.
    """
    return await service.list_units(filters)


@router.get("/stats", response_model=UnitStatsResponse)
async def get_stats(
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(get_current_user),
):
    return await service.get_stats()


@router.get("/blocks", response_model=BlockGridResponse)
async def get_block_grid(
    filters: UnitFilters = Depends(get_filters),
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(get_current_user),
):
    """Units grouped by block, sorted by unit number, with per-block counts."""
    return await service.get_block_grid(filters)


@router.get("/events")
async def stream_unit_events(
    sse: SSEManager = Depends(get_sse_manager),
    current_user: User = Depends(get_current_user),
):
    """
    Stream unit changes via Server-Sent Events.

    A unit_updated event follows every successful mutation; clients
    refetch their list and stats on receipt. Ping sent every 30s.
    """
    initial = SSEMessage(data={"channel": UNITS_CHANNEL}, event="connected", id="0")

    return StreamingResponse(
        sse.stream(UNITS_CHANNEL, ping_interval=30, initial_message=initial),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
    )


@router.get("/{unit_id}", response_model=UnitResponse)
async def get_unit(
    unit_id: UUID,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(get_current_user),
):
    return await service.get_unit(unit_id)


# ============================================
# MUTATIONS
# ============================================

@router.patch("/{unit_id}", response_model=UnitResponse)
async def update_unit(
    unit_id: UUID,
    data: UnitUpdate,
    gateway: UnitMutationGateway = Depends(get_mutation_gateway),
    current_user: User = Depends(require_admin),
):
    """
    Edit unit fields directly.

    Status may be overridden, except that a unit sold through the sales
    feed stays sold. Pass expected_updated_at to reject the edit when the
    unit changed since it was read.
    """
    return await gateway.edit_fields(unit_id, data)


@router.post("/{unit_id}/actions", response_model=UnitResponse)
async def apply_unit_action(
    unit_id: UUID,
    data: UnitActionRequest,
    gateway: UnitMutationGateway = Depends(get_mutation_gateway),
    current_user: User = Depends(require_admin),
):
    """
    Apply a guided status action.

    - available: reserve_temporary (48h hold), reserve_permanent, sell
    - reserved: cancel_hold, revert_to_available, sell
    - sold: none
    """
    return await gateway.apply_action(unit_id, data)
