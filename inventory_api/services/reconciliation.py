"""
Reconciliation Merger

Overlays the external sales feed on unit-store rows. The feed is
authoritative for "sold" only: a matched unit is forced to sold and its
buyer/staff fields are backfilled from the feed where the feed has a
non-empty value. Unmatched units pass through untouched.
"""
from typing import Iterable, List, Mapping

from inventory_api.schemas.sales_feed import SoldUnitInfo
from inventory_api.schemas.unit import UnitResponse, UnitStatus


def feed_key(unit_number) -> str:
    """Feed rows are keyed by the unit number as a string, without block."""
    return str(unit_number).strip()


def merge_unit(unit: UnitResponse, sold_feed: Mapping[str, SoldUnitInfo]) -> UnitResponse:
    info = sold_feed.get(feed_key(unit.unit_number))
    if info is None:
        return unit

    return unit.model_copy(update={
        "status": UnitStatus.SOLD,
        "reservation_expires_at": None,
        "buyer_name": info.buyer_name or unit.buyer_name,
        "sales_employee": info.sales_person or unit.sales_employee,
        "accountant_name": info.accountant_name or unit.accountant_name,
        "sold_via_feed": True,
        "sale_info": info,
    })


def merge_units(
    units: Iterable[UnitResponse],
    sold_feed: Mapping[str, SoldUnitInfo],
) -> List[UnitResponse]:
    """
    Merge unit-store rows with the sold-units feed.

    Pure and total: never raises for unmatched units, and merging the same
    feed twice yields the same result.
    """
    return [merge_unit(unit, sold_feed) for unit in units]


def effective_status(unit, sold_feed: Mapping[str, SoldUnitInfo]) -> UnitStatus:
    """Status of a stored unit once the feed overlay is applied."""
    if feed_key(unit.unit_number) in sold_feed:
        return UnitStatus.SOLD
    return UnitStatus(unit.status)
