"""
Bulk unit import for seeding the block grid.

Rows come from a CSV export (block,unit_number,area_m2,price,is_residential
and an optional status column in English or Arabic) or from a generated
demo layout. Import is idempotent: rows whose (block, unit number) already
exist are skipped.
"""
import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.lib.config import settings
from inventory_api.lib.errors import UnitValidationError
from inventory_api.models.unit import Unit
from inventory_api.services.sales_feed import parse_number
from inventory_api.services.status_utils import normalize_status

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"block", "unit_number", "area_m2"}

TRUE_VALUES = {"1", "true", "yes", "y", "نعم"}


def _parse_bool(value: Any, default: bool = True) -> bool:
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip().lower() in TRUE_VALUES


def parse_unit_row(row: Dict[str, Any], line: int = 0) -> Dict[str, Any]:
    """Validate one CSV row into Unit column values."""
    block_number = int(parse_number(row.get("block")))
    unit_number = int(parse_number(row.get("unit_number")))

    area = parse_number(row.get("area_m2"))
    price = parse_number(row.get("price"))

    if not 1 <= block_number <= settings.block_count:
        raise UnitValidationError(
            f"Line {line}: block {block_number} is outside 1..{settings.block_count}"
        )
    if unit_number <= 0:
        raise UnitValidationError(f"Line {line}: unit_number must be positive")
    if area <= 0:
        raise UnitValidationError(f"Line {line}: area_m2 must be positive")
    if price < 0:
        raise UnitValidationError(f"Line {line}: price must not be negative")

    return {
        "block_number": block_number,
        "unit_number": unit_number,
        "area_m2": area,
        "price": price,
        "is_residential": _parse_bool(row.get("is_residential")),
        "status": normalize_status(row.get("status")).value,
    }


def read_units_csv(path: Union[str, Path]) -> List[Dict[str, Any]]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        missing = REQUIRED_COLUMNS - set(reader.fieldnames or [])
        if missing:
            raise UnitValidationError(f"CSV is missing columns: {', '.join(sorted(missing))}")

        # Line 1 is the header
        return [parse_unit_row(row, line) for line, row in enumerate(reader, start=2)]


def demo_layout(block_count: int = 21, units_per_block: int = 12) -> List[Dict[str, Any]]:
    """
    Generated grid for development databases.

    Unit numbers run across the whole project, since the sales feed
    identifies units by number alone. Every sixth unit is commercial.
    """
    rows = []
    unit_number = 0
    for block_number in range(1, block_count + 1):
        for position in range(units_per_block):
            unit_number += 1
            area = 200 + (unit_number % 5) * 25
            rows.append({
                "block_number": block_number,
                "unit_number": unit_number,
                "area_m2": float(area),
                "price": float(area * 850_000),
                "is_residential": position % 6 != 5,
                "status": "available",
            })
    return rows


async def import_units(db: AsyncSession, rows: Iterable[Dict[str, Any]]) -> Tuple[int, int]:
    """Insert rows not already present. Returns (created, skipped)."""
    result = await db.execute(select(Unit.block_number, Unit.unit_number))
    existing = {(block, number) for block, number in result.all()}

    created = skipped = 0
    for row in rows:
        key = (row["block_number"], row["unit_number"])
        if key in existing:
            skipped += 1
            continue
        db.add(Unit(**row))
        existing.add(key)
        created += 1

    await db.commit()
    logger.info(f"Imported {created} unit(s), skipped {skipped} existing")
    return created, skipped
