#!/usr/bin/env python3
"""
Seed script to populate the unit grid.

Usage:
    python scripts/seed_units.py                  # demo layout, 21 blocks
    python scripts/seed_units.py --csv units.csv  # import from CSV
"""
import argparse
import asyncio

from inventory_api.lib.config import settings
from inventory_api.lib.database import AsyncSessionLocal
from inventory_api.lib.log_config import configure_logging
from inventory_api.services.unit_import import demo_layout, import_units, read_units_csv


async def seed(csv_path: str = None, units_per_block: int = 12):
    """Create units that do not exist yet."""
    if csv_path:
        rows = read_units_csv(csv_path)
    else:
        rows = demo_layout(settings.block_count, units_per_block)

    async with AsyncSessionLocal() as session:
        created, skipped = await import_units(session, rows)

    print(f"Created {created} unit(s), {skipped} already present")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the units table")
    parser.add_argument("--csv", dest="csv_path", help="CSV with block,unit_number,area_m2,price,is_residential[,status]")
    parser.add_argument("--units-per-block", type=int, default=12)
    args = parser.parse_args()

    configure_logging()
    asyncio.run(seed(args.csv_path, args.units_per_block))
