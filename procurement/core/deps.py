"""
Dependencies for FastAPI endpoints.

Authentication happens upstream; the identity provider forwards the
authenticated user's id in the ``X-Actor-Id`` header, and these dependencies
resolve it to an active User.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from procurement.core.logging import logger
from procurement.db.session import get_db
from procurement.db.store import LedgerStore
from procurement.models.user import User
from procurement.utils.pagination import PaginationParams

ACTOR_HEADER = "X-Actor-Id"


def get_pagination_params(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(10, ge=1, le=100, description="Page size"),
    search: Optional[str] = Query(None, description="Search term"),
    sort_by: Optional[str] = Query(None, description="Field to sort by"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$", description="Sort order")
) -> PaginationParams:
    """
    Get pagination parameters from request query.

    Returns:
        PaginationParams object with extracted values
    """
    return PaginationParams(
        page=page,
        size=size,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order
    )


async def get_request_client(request: Request):
    """Extract client information from request."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent")
    }


async def get_actor(
    x_actor_id: Optional[str] = Header(None, alias=ACTOR_HEADER),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the acting user from the ``X-Actor-Id`` header.

    Raises:
        HTTPException: 401 if the header is missing, malformed or names no
            user; 403 if the user is deactivated
    """
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {ACTOR_HEADER} header",
        )
    try:
        actor_id = UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Malformed {ACTOR_HEADER} header",
        )

    user = await LedgerStore(db).find(User, User.id == actor_id)
    if user is None:
        logger.warning(f"Unknown actor in {ACTOR_HEADER}: {actor_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown actor",
        )
    if not user.is_active:
        logger.warning(f"Inactive actor refused: {actor_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return user
