from fastapi import APIRouter, Request

from inventory_api import __version__

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(request: Request):
    """Liveness probe. Reports whether the sales feed is configured, not whether it is reachable."""
    sales_feed = request.app.state.sales_feed
    return {
        "status": "ok",
        "version": __version__,
        "sales_feed_enabled": sales_feed.enabled,
    }
