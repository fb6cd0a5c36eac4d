"""
Aggregation / Stats Engine

Counts over the merged unit set.

Whole-project stats only count residential units; per-block stats count
every unit in the block.
"""
from collections import Counter
from typing import Dict, Iterable, List

from inventory_api.schemas.unit import (
    BlockSummary,
    UnitFilters,
    UnitResponse,
    UnitStats,
    UnitStatus,
)


def _count(units: Iterable[UnitResponse]) -> UnitStats:
    counts = Counter(UnitStatus(u.status) for u in units)
    return UnitStats(
        total=sum(counts.values()),
        available=counts[UnitStatus.AVAILABLE],
        reserved=counts[UnitStatus.RESERVED],
        sold=counts[UnitStatus.SOLD],
    )


def compute_stats(merged_units: Iterable[UnitResponse]) -> UnitStats:
    """Project-wide counts over residential units, independent of any UI filter."""
    return _count(u for u in merged_units if u.is_residential)


def compute_block_stats(merged_units: Iterable[UnitResponse], block_number: int) -> UnitStats:
    """Counts for one block, residential or not. A missing block yields zeros."""
    return _count(u for u in merged_units if u.block_number == block_number)


def group_by_block(units: Iterable[UnitResponse], block_count: int = 21) -> Dict[int, List[UnitResponse]]:
    """Units per block 1..block_count, each block sorted by unit number. Out-of-range blocks are dropped."""
    grouped: Dict[int, List[UnitResponse]] = {block: [] for block in range(1, block_count + 1)}

    for unit in units:
        if unit.block_number in grouped:
            grouped[unit.block_number].append(unit)

    for block_units in grouped.values():
        block_units.sort(key=lambda u: u.unit_number)

    return grouped


def summarize_blocks(units: List[UnitResponse], block_count: int = 21) -> List[BlockSummary]:
    """Grid sections for every block that has at least one unit."""
    summaries = []
    for block_number, block_units in group_by_block(units, block_count).items():
        stats = compute_block_stats(block_units, block_number)
        if stats.total == 0:
            continue
        summaries.append(BlockSummary(block_number=block_number, stats=stats, units=block_units))
    return summaries


# ============================================
# FILTERING
# ============================================

def matches_search(unit: UnitResponse, search: str) -> bool:
    """
    Substring match on unit number, numeric equality on block number,
    case-insensitive substring match on buyer name.
    """
    term = search.strip()
    if not term:
        return True

    if term in str(unit.unit_number):
        return True

    if term.isdigit() and unit.block_number == int(term):
        return True

    return bool(unit.buyer_name) and term.casefold() in unit.buyer_name.casefold()


def apply_filters(units: Iterable[UnitResponse], filters: UnitFilters) -> List[UnitResponse]:
    """Filter a merged unit list. Status is compared against the merged status."""
    result = []
    for unit in units:
        if filters.status is not None and UnitStatus(unit.status) != filters.status:
            continue
        if filters.block is not None and unit.block_number != filters.block:
            continue
        if not matches_search(unit, filters.search):
            continue
        result.append(unit)
    return result
