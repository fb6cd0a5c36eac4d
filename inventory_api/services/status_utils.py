"""
Status spelling normalization for imported unit data.

Spreadsheets and CSV exports carry statuses in English or Arabic, in
either gender form. Anything unrecognized counts as available.
"""
from typing import Any

from inventory_api.schemas.unit import UnitStatus

STATUS_ALIASES = {
    "available": UnitStatus.AVAILABLE,
    "متاح": UnitStatus.AVAILABLE,
    "متاحة": UnitStatus.AVAILABLE,
    "reserved": UnitStatus.RESERVED,
    "محجوز": UnitStatus.RESERVED,
    "محجوزة": UnitStatus.RESERVED,
    "sold": UnitStatus.SOLD,
    "مباع": UnitStatus.SOLD,
    "مباعة": UnitStatus.SOLD,
}


def normalize_status(value: Any) -> UnitStatus:
    if value is None:
        return UnitStatus.AVAILABLE
    return STATUS_ALIASES.get(str(value).strip().lower(), UnitStatus.AVAILABLE)
