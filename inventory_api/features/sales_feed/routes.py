"""
Sales feed endpoints.

Exposes the state of the external sales feed snapshot and lets operators
force a refetch after a failure.
"""
from fastapi import APIRouter, Depends

from inventory_api.lib.deps import get_current_user, get_sales_feed
from inventory_api.models.user import User
from inventory_api.schemas.sales_feed import FeedSnapshot, FeedSnapshotResponse
from inventory_api.services.sales_feed import SalesFeedService

router = APIRouter(prefix="/sales-feed", tags=["Sales Feed"])


def _build_response(snapshot: FeedSnapshot) -> FeedSnapshotResponse:
    return FeedSnapshotResponse(
        **snapshot.status().model_dump(),
        unit_numbers=sorted(snapshot.sold_units, key=lambda n: (len(n), n)),
    )


@router.get("", response_model=FeedSnapshotResponse)
async def get_feed(
    sales_feed: SalesFeedService = Depends(get_sales_feed),
    current_user: User = Depends(get_current_user),
):
    """Current snapshot, refetched only when the cached one has expired."""
    return _build_response(await sales_feed.get_snapshot())


@router.post("/refresh", response_model=FeedSnapshotResponse)
async def refresh_feed(
    sales_feed: SalesFeedService = Depends(get_sales_feed),
    current_user: User = Depends(get_current_user),
):
    """
    Force a refetch of the sales feed.

    A failed refetch keeps the previous snapshot; the response then
    carries stale=true and the error.
    """
    return _build_response(await sales_feed.get_snapshot(force=True))
