"""
Shared FastAPI dependencies: current user, role checks, and the
per-application cache, feed service and SSE broker held on app.state.
"""
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventory_api.lib.cache import QueryCache
from inventory_api.lib.database import get_db
from inventory_api.lib.security import decode_access_token
from inventory_api.lib.sse import SSEManager
from inventory_api.models.user import User
from inventory_api.services.sales_feed import SalesFeedService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise unauthorized

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise unauthorized

    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise unauthorized

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active == True)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise unauthorized

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Unit edits and guided actions are admin-only."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required"
        )
    return current_user


def get_query_cache(request: Request) -> QueryCache:
    return request.app.state.query_cache


def get_sales_feed(request: Request) -> SalesFeedService:
    return request.app.state.sales_feed


def get_sse_manager(request: Request) -> SSEManager:
    return request.app.state.sse_manager
