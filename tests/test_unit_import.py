import pytest

from inventory_api.lib.errors import UnitValidationError
from inventory_api.services.unit_import import demo_layout, import_units, read_units_csv
from inventory_api.services.unit_store import UnitStore


def test_read_csv(tmp_path):
    path = tmp_path / "units.csv"
    path.write_text(
        "block,unit_number,area_m2,price,is_residential,status\n"
        "3,12,250,\"212,500,000\",true,محجوز\n"
        "1,120,300.5,0,no,\n",
        encoding="utf-8",
    )

    rows = read_units_csv(path)

    assert rows[0] == {
        "block_number": 3,
        "unit_number": 12,
        "area_m2": 250.0,
        "price": 212500000.0,
        "is_residential": True,
        "status": "reserved",
    }
    assert rows[1]["is_residential"] is False
    assert rows[1]["status"] == "available"


def test_read_csv_missing_columns(tmp_path):
    path = tmp_path / "units.csv"
    path.write_text("block,price\n1,100\n", encoding="utf-8")

    with pytest.raises(UnitValidationError):
        read_units_csv(path)


def test_read_csv_rejects_out_of_range_block(tmp_path):
    path = tmp_path / "units.csv"
    path.write_text("block,unit_number,area_m2\n22,1,100\n", encoding="utf-8")

    with pytest.raises(UnitValidationError, match="Line 2"):
        read_units_csv(path)


def test_demo_layout_numbers_units_across_blocks():
    rows = demo_layout(block_count=21, units_per_block=4)

    assert len(rows) == 84
    assert len({r["unit_number"] for r in rows}) == 84
    assert {r["block_number"] for r in rows} == set(range(1, 22))


async def test_import_is_idempotent(db):
    rows = demo_layout(block_count=2, units_per_block=3)

    assert await import_units(db, rows) == (6, 0)
    assert await import_units(db, rows) == (0, 6)
    assert len(await UnitStore(db).list_units()) == 6
