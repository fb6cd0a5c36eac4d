"""
External sales feed schemas.

SoldUnitInfo serializes with camelCase keys (unitNumber, buyerName, ...)
to match the shape dashboards already consume.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SoldUnitInfo(BaseModel):
    """One externally recorded sale, keyed by unit number."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    unit_number: str
    buyer_name: str = ""
    buyer_phone: str = ""
    sales_person: str = ""
    sale_date: str = ""
    accountant_name: str = ""
    area: float = 0
    sale_price: float = 0
    category: str = ""


class FeedStatus(BaseModel):
    """Feed health attached to every list/stats response."""
    enabled: bool
    available: bool = Field(description="False when no feed data could be loaded at all")
    stale: bool = Field(default=False, description="Serving the last good snapshot after a failed refetch")
    error: Optional[str] = None
    fetched_at: Optional[datetime] = None
    sold_count: int = 0


class FeedSnapshot(BaseModel):
    """Point-in-time copy of the feed, rebuilt wholesale on each refetch."""
    sold_units: Dict[str, SoldUnitInfo] = Field(default_factory=dict)
    enabled: bool = True
    fetched_at: Optional[datetime] = None
    error: Optional[str] = None
    stale: bool = False

    @property
    def available(self) -> bool:
        return self.fetched_at is not None

    def status(self) -> FeedStatus:
        return FeedStatus(
            enabled=self.enabled,
            available=self.available,
            stale=self.stale,
            error=self.error,
            fetched_at=self.fetched_at,
            sold_count=len(self.sold_units),
        )


class FeedSnapshotResponse(FeedStatus):
    """Feed status plus the unit numbers currently reported sold."""
    unit_numbers: List[str] = Field(default_factory=list)
