import os

# Settings are read at import time; point them at SQLite and no feed
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SALES_FEED_URL"] = ""
os.environ["SECRET_KEY"] = "test-secret"

import uuid
from typing import Any, Dict, List

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from inventory_api.lib.cache import QueryCache
from inventory_api.lib.database import Base, get_db
from inventory_api.lib.security import create_access_token, get_password_hash
from inventory_api.lib.sse import SSEManager
from inventory_api.main import app
from inventory_api.models.unit import Unit
from inventory_api.models.user import User
from inventory_api.schemas.unit import UnitResponse
from inventory_api.services.sales_feed import SalesFeedClient, SalesFeedService

FEED_URL = "http://feed.test/sold-units"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_unit(db):
    """Insert a unit row and return it."""
    async def _make(unit_number: int, block_number: int = 1, status: str = "available", **fields) -> Unit:
        fields.setdefault("area_m2", 250.0)
        fields.setdefault("price", 120000.0)
        unit = Unit(unit_number=unit_number, block_number=block_number, status=status, **fields)
        db.add(unit)
        await db.commit()
        await db.refresh(unit)
        return unit

    return _make


@pytest.fixture
def unit_view():
    """Build an unsaved UnitResponse for pure merge/stats tests."""
    def _make(unit_number: int, block_number: int = 1, status: str = "available", **fields) -> UnitResponse:
        fields.setdefault("area_m2", 250.0)
        fields.setdefault("price", 120000.0)
        return UnitResponse(
            id=uuid.uuid4(),
            unit_number=unit_number,
            block_number=block_number,
            status=status,
            **fields,
        )

    return _make


# ============================================
# SALES FEED
# ============================================

class FeedStub:
    """Programmable sales feed endpoint for httpx.MockTransport."""

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []
        self.fail_with: int = 0
        self.requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        if self.fail_with:
            return httpx.Response(self.fail_with, text="upstream error")
        return httpx.Response(200, json={"rows": self.rows})


@pytest.fixture
def feed_stub():
    return FeedStub()


@pytest.fixture
async def sales_feed(feed_stub):
    """Feed service whose snapshot expires at once; the first read waits for it."""
    client = SalesFeedClient(
        FEED_URL,
        retry_count=1,
        backoff_seconds=0,
        transport=httpx.MockTransport(feed_stub),
    )
    service = SalesFeedService(client, cache_seconds=0)
    yield service
    await service.aclose()


# ============================================
# API
# ============================================

@pytest.fixture
async def admin_user(db):
    user = User(
        email="admin@example.com",
        password_hash=get_password_hash("admin123"),
        name="Admin User",
        role="admin",
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def employee_user(db):
    user = User(
        email="sales@example.com",
        password_hash=get_password_hash("sales123"),
        name="Sales User",
        role="employee",
        department="Sales",
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def employee_headers(employee_user):
    return auth_headers(employee_user)


@pytest.fixture
async def client(db, sales_feed):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.state.query_cache = QueryCache(default_ttl=15)
    app.state.sales_feed = sales_feed
    app.state.sse_manager = SSEManager()

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
