from inventory_api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    UserResponse,
)
from inventory_api.schemas.sales_feed import (
    FeedSnapshot,
    FeedSnapshotResponse,
    FeedStatus,
    SoldUnitInfo,
)
from inventory_api.schemas.unit import (
    BlockGridResponse,
    BlockSummary,
    TimeRemaining,
    UnitAction,
    UnitActionRequest,
    UnitFilters,
    UnitListResponse,
    UnitResponse,
    UnitStats,
    UnitStatsResponse,
    UnitStatus,
    UnitUpdate,
)

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "UserResponse",
    # Sales feed
    "FeedSnapshot",
    "FeedSnapshotResponse",
    "FeedStatus",
    "SoldUnitInfo",
    # Units
    "BlockGridResponse",
    "BlockSummary",
    "TimeRemaining",
    "UnitAction",
    "UnitActionRequest",
    "UnitFilters",
    "UnitListResponse",
    "UnitResponse",
    "UnitStats",
    "UnitStatsResponse",
    "UnitStatus",
    "UnitUpdate",
]
