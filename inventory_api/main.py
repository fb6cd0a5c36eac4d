import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inventory_api import __version__
from inventory_api.lib.cache import QueryCache
from inventory_api.lib.config import settings
from inventory_api.lib.errors import InventoryError, inventory_error_handler
from inventory_api.lib.log_config import configure_logging
from inventory_api.lib.sse import SSEManager
from inventory_api.features.health.routes import router as health_router
from inventory_api.features.auth.routes import router as auth_router
from inventory_api.features.units.routes import router as units_router
from inventory_api.features.sales_feed.routes import router as sales_feed_router
from inventory_api.services.sales_feed import build_sales_feed_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    app.state.query_cache = QueryCache(default_ttl=settings.units_cache_seconds)
    app.state.sales_feed = build_sales_feed_service()
    app.state.sse_manager = SSEManager()

    if not app.state.sales_feed.enabled:
        logger.warning("SALES_FEED_URL is not set; units will not be reconciled with external sales")

    logger.info(f"Unit Inventory API {__version__} started")
    yield
    await app.state.sales_feed.aclose()
    app.state.query_cache.clear()


app = FastAPI(
    title="Unit Inventory API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(InventoryError, inventory_error_handler)

app.include_router(health_router, prefix="/api", tags=["Health"])
app.include_router(auth_router, prefix="/api", tags=["Authentication"])
app.include_router(units_router, prefix="/api", tags=["Units"])
app.include_router(sales_feed_router, prefix="/api", tags=["Sales Feed"])


@app.get("/")
async def root():
    return {"message": "Unit Inventory API", "docs": "/docs"}
