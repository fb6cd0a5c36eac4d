from datetime import datetime

from inventory_api.schemas.sales_feed import SoldUnitInfo
from inventory_api.schemas.unit import UnitStatus
from inventory_api.services.reconciliation import effective_status, merge_units


def test_feed_overrides_local_reservation(unit_view):
    units = [unit_view(7, 2, "reserved", buyer_name="Ali", reservation_expires_at=datetime(2026, 3, 2))]
    feed = {"7": SoldUnitInfo(unit_number="7", buyer_name="Sara", sales_person="Huda")}

    [merged] = merge_units(units, feed)

    assert merged.status == UnitStatus.SOLD
    assert merged.buyer_name == "Sara"
    assert merged.sales_employee == "Huda"
    assert merged.reservation_expires_at is None
    assert merged.sold_via_feed
    assert merged.sale_info.buyer_name == "Sara"


def test_every_feed_unit_ends_up_sold(unit_view):
    units = [unit_view(1, 1, "available"), unit_view(2, 1, "reserved"), unit_view(3, 1, "sold")]
    feed = {"1": SoldUnitInfo(unit_number="1"), "2": SoldUnitInfo(unit_number="2"), "3": SoldUnitInfo(unit_number="3")}

    assert all(u.status == UnitStatus.SOLD for u in merge_units(units, feed))


def test_empty_feed_fields_keep_local_values(unit_view):
    units = [unit_view(9, 4, "reserved", buyer_name="Omar", sales_employee="Rana", accountant_name="Zaid")]
    feed = {"9": SoldUnitInfo(unit_number="9", buyer_name="", accountant_name="Layla")}

    [merged] = merge_units(units, feed)

    assert merged.buyer_name == "Omar"
    assert merged.sales_employee == "Rana"
    assert merged.accountant_name == "Layla"


def test_unmatched_units_pass_through(unit_view):
    unit = unit_view(4, 1, "reserved", buyer_name="Ali")

    [merged] = merge_units([unit], {"40": SoldUnitInfo(unit_number="40")})

    assert merged == unit
    assert not merged.sold_via_feed


def test_merge_is_idempotent(unit_view):
    units = [
        unit_view(7, 2, "reserved", buyer_name="Ali"),
        unit_view(8, 2, "available"),
        unit_view(12, 3, "sold", buyer_name="Noor"),
    ]
    feed = {
        "7": SoldUnitInfo(unit_number="7", buyer_name="Sara"),
        "12": SoldUnitInfo(unit_number="12", sales_person="Huda"),
    }

    once = merge_units(units, feed)
    assert merge_units(once, feed) == once


def test_empty_feed_changes_nothing(unit_view):
    units = [unit_view(1, 1, "reserved"), unit_view(2, 1, "available")]
    assert merge_units(units, {}) == units


def test_effective_status_reads_feed(unit_view):
    unit = unit_view(7, 2, "available")
    assert effective_status(unit, {}) == UnitStatus.AVAILABLE
    assert effective_status(unit, {"7": SoldUnitInfo(unit_number="7")}) == UnitStatus.SOLD
