"""
Hold Expiry Evaluator

Read-time evaluation of temporary holds. Expiry is advisory only: nothing
here, or anywhere else in the service, flips an expired hold back to
available. An operator resolves it with cancel_hold.
"""
from datetime import datetime, timedelta
from typing import Any, Optional

from inventory_api.lib.clock import as_naive_utc, utcnow
from inventory_api.schemas.unit import TimeRemaining, UnitStatus

MILLIS_PER_MINUTE = 60 * 1000
MILLIS_PER_HOUR = 60 * MILLIS_PER_MINUTE


def _status_value(unit: Any) -> str:
    status = getattr(unit, "status", None)
    return status.value if isinstance(status, UnitStatus) else status


def is_expired(unit: Any, now: Optional[datetime] = None) -> bool:
    """
    True iff the unit is reserved and its hold expiry is strictly in the past.

    Permanent holds (no expiry) and units that are not reserved never expire.
    """
    if _status_value(unit) != UnitStatus.RESERVED.value:
        return False

    expires_at = as_naive_utc(getattr(unit, "reservation_expires_at", None))
    if expires_at is None:
        return False

    now = as_naive_utc(now) if now is not None else utcnow()
    return expires_at < now


def has_active_temporary_hold(unit: Any, now: Optional[datetime] = None) -> bool:
    """True iff reserved with an expiry that has not lapsed yet."""
    return (
        _status_value(unit) == UnitStatus.RESERVED.value
        and getattr(unit, "reservation_expires_at", None) is not None
        and not is_expired(unit, now)
    )


def time_remaining(expires_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[TimeRemaining]:
    """
    Whole hours and remainder minutes until expires_at, or None once it has passed.

    Pure function of two timestamps; callers recompute it on every read.
    """
    if expires_at is None:
        return None

    now = as_naive_utc(now) if now is not None else utcnow()
    delta_ms = int((as_naive_utc(expires_at) - now) / timedelta(milliseconds=1))
    if delta_ms <= 0:
        return None

    return TimeRemaining(
        hours=delta_ms // MILLIS_PER_HOUR,
        minutes=(delta_ms % MILLIS_PER_HOUR) // MILLIS_PER_MINUTE,
    )


def hold_expiry_for(now: datetime, hold_hours: int) -> datetime:
    """Expiry timestamp for a temporary hold placed at now."""
    return as_naive_utc(now) + timedelta(hours=hold_hours)


def annotate_hold(unit, now: Optional[datetime] = None):
    """Return a copy of a UnitResponse with hold_expired, has_active_hold and hold_remaining set."""
    now = now or utcnow()
    active = has_active_temporary_hold(unit, now)

    return unit.model_copy(update={
        "hold_expired": is_expired(unit, now),
        "has_active_hold": active,
        "hold_remaining": time_remaining(unit.reservation_expires_at, now) if active else None,
    })
