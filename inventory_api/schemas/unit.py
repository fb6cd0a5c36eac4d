"""
Unit schemas for queries, mutations and the merged dashboard view.
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inventory_api.lib.config import settings
from inventory_api.schemas.sales_feed import FeedStatus, SoldUnitInfo


class UnitStatus(str, Enum):
    """Unit availability status."""
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"


class UnitAction(str, Enum):
    """Guided status transitions an operator can request."""
    RESERVE_TEMPORARY = "reserve_temporary"
    RESERVE_PERMANENT = "reserve_permanent"
    SELL = "sell"
    CANCEL_HOLD = "cancel_hold"
    REVERT_TO_AVAILABLE = "revert_to_available"


# ============================================
# FILTERS
# ============================================

class UnitFilters(BaseModel):
    """
    Dashboard filters. None means "all" for status and block.

    Frozen so it can be used as part of a cache key.
    """
    model_config = ConfigDict(frozen=True)

    search: str = ""
    status: Optional[UnitStatus] = None
    block: Optional[int] = Field(None, ge=1)

    @field_validator('status', 'block', mode='before')
    @classmethod
    def all_means_none(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in ("", "all"):
            return None
        return v

    @field_validator('block')
    @classmethod
    def block_in_project(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v > settings.block_count:
            raise ValueError(f"block must be between 1 and {settings.block_count}")
        return v

    @field_validator('search', mode='before')
    @classmethod
    def strip_search(cls, v: Any) -> str:
        return str(v or "").strip()


# ============================================
# UNIT VIEW
# ============================================

class TimeRemaining(BaseModel):
    hours: int
    minutes: int


class UnitResponse(BaseModel):
    """
    Unit as shown to dashboards.

    Stored columns plus fields computed at read time: the feed overlay
    (sold_via_feed, sale_info) and the hold annotations.
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    unit_number: int
    block_number: int
    area_m2: float
    price: float
    status: UnitStatus
    buyer_name: Optional[str] = None
    buyer_phone: Optional[str] = None
    sales_employee: Optional[str] = None
    accountant_name: Optional[str] = None
    notes: Optional[str] = None
    reservation_expires_at: Optional[datetime] = None
    is_residential: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    sold_via_feed: bool = False
    sale_info: Optional[SoldUnitInfo] = None
    hold_expired: bool = False
    has_active_hold: bool = False
    hold_remaining: Optional[TimeRemaining] = None


class UnitStats(BaseModel):
    total: int = 0
    available: int = 0
    reserved: int = 0
    sold: int = 0


class BlockSummary(BaseModel):
    block_number: int
    stats: UnitStats
    units: List[UnitResponse]


class UnitListResponse(BaseModel):
    units: List[UnitResponse]
    total: int
    stats: UnitStats
    feed: FeedStatus


class UnitStatsResponse(BaseModel):
    stats: UnitStats
    feed: FeedStatus


class BlockGridResponse(BaseModel):
    blocks: List[BlockSummary]
    stats: UnitStats
    feed: FeedStatus


# ============================================
# MUTATIONS
# ============================================

class UnitUpdate(BaseModel):
    """Direct field edit. Only fields that are set are written."""
    price: Optional[float] = Field(None, ge=0)
    status: Optional[UnitStatus] = None
    buyer_name: Optional[str] = Field(None, max_length=255)
    buyer_phone: Optional[str] = Field(None, max_length=50)
    sales_employee: Optional[str] = Field(None, max_length=255)
    accountant_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    reservation_expires_at: Optional[datetime] = None
    expected_updated_at: Optional[datetime] = Field(
        None,
        description="When set, the update is rejected if the unit changed since this timestamp"
    )


class UnitActionRequest(BaseModel):
    """Guided transition, optionally recording buyer and staff details."""
    action: UnitAction
    buyer_name: Optional[str] = Field(None, max_length=255)
    buyer_phone: Optional[str] = Field(None, max_length=50)
    sales_employee: Optional[str] = Field(None, max_length=255)
    accountant_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    expected_updated_at: Optional[datetime] = None
