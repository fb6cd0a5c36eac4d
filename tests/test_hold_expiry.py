from datetime import datetime, timedelta, timezone

from inventory_api.schemas.unit import TimeRemaining
from inventory_api.services.hold_expiry import (
    annotate_hold,
    has_active_temporary_hold,
    hold_expiry_for,
    is_expired,
    time_remaining,
)

NOW = datetime(2026, 3, 1, 9, 0, 0)


def test_expired_one_second_ago(unit_view):
    unit = unit_view(12, 3, "reserved", reservation_expires_at=NOW - timedelta(seconds=1))
    assert is_expired(unit, NOW)
    assert not has_active_temporary_hold(unit, NOW)


def test_not_expired_one_second_ahead(unit_view):
    unit = unit_view(12, 3, "reserved", reservation_expires_at=NOW + timedelta(seconds=1))
    assert not is_expired(unit, NOW)
    assert has_active_temporary_hold(unit, NOW)


def test_expiry_exactly_now_is_not_expired(unit_view):
    unit = unit_view(12, 3, "reserved", reservation_expires_at=NOW)
    assert not is_expired(unit, NOW)
    # No time left either, so there is nothing to count down
    assert time_remaining(unit.reservation_expires_at, NOW) is None


def test_only_reserved_units_expire(unit_view):
    past = NOW - timedelta(days=3)
    for status in ("available", "sold"):
        unit = unit_view(5, 1, status, reservation_expires_at=past)
        assert not is_expired(unit, NOW)
        assert not has_active_temporary_hold(unit, NOW)


def test_permanent_hold_never_expires(unit_view):
    unit = unit_view(5, 1, "reserved")
    assert not is_expired(unit, NOW)
    assert not has_active_temporary_hold(unit, NOW)


def test_aware_timestamps_are_compared_in_utc(unit_view):
    expires = datetime(2026, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=3)))  # 09:00 UTC
    unit = unit_view(5, 1, "reserved", reservation_expires_at=expires)
    assert not is_expired(unit, NOW)
    assert is_expired(unit, NOW + timedelta(minutes=1))


def test_time_remaining_floors_hours_and_minutes():
    expires = NOW + timedelta(hours=47, minutes=59, seconds=59, milliseconds=999)
    assert time_remaining(expires, NOW) == TimeRemaining(hours=47, minutes=59)


def test_time_remaining_under_a_minute():
    assert time_remaining(NOW + timedelta(seconds=30), NOW) == TimeRemaining(hours=0, minutes=0)


def test_time_remaining_none_without_expiry():
    assert time_remaining(None, NOW) is None


def test_hold_expiry_for_default_window():
    assert hold_expiry_for(NOW, 48) == NOW + timedelta(hours=48)


def test_annotate_hold_sets_display_fields(unit_view):
    unit = unit_view(12, 3, "reserved", reservation_expires_at=NOW + timedelta(hours=2, minutes=30))

    annotated = annotate_hold(unit, NOW)

    assert annotated.has_active_hold
    assert not annotated.hold_expired
    assert annotated.hold_remaining == TimeRemaining(hours=2, minutes=30)
    # The source object is left as it was
    assert unit.hold_remaining is None


def test_annotate_hold_expired_keeps_status(unit_view):
    unit = unit_view(12, 3, "reserved", reservation_expires_at=NOW - timedelta(hours=1))

    annotated = annotate_hold(unit, NOW)

    assert annotated.hold_expired
    assert not annotated.has_active_hold
    assert annotated.hold_remaining is None
    assert annotated.status == "reserved"
