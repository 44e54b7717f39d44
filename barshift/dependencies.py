"""FastAPI dependencies."""

from datetime import UTC, datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.events import EventPublisher
from barshift.core.redis_client import get_redis_client
from barshift.core.security import decode_access_token
from barshift.database import get_db
from barshift.models.staff import staff_members
from barshift.schemas.staff import StaffStatus, is_manager

# Security
security = HTTPBearer()


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate the staff member ID from a JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Staff member ID from token

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)

    subject = payload.get("sub") if payload else None
    if subject is None or not isinstance(subject, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(subject)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, Any]:
    """
    Load the authenticated staff member.

    Raises:
        HTTPException: If the staff member is unknown or not active
    """
    result = await db.execute(select(staff_members).where(staff_members.c.id == user_id))
    user = result.mappings().first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user["status"] != StaffStatus.ACTIVE.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not active",
        )

    return dict(user)


async def require_manager(
    user: Annotated[dict[str, Any], Depends(get_current_user)],
) -> dict[str, Any]:
    """Require a management role."""
    if not is_manager(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manager role required",
        )
    return user


def get_event_publisher() -> EventPublisher:
    """Publisher for domain events on the configured Redis channel."""
    return EventPublisher(get_redis_client())


def get_as_of() -> datetime:
    """Request instant passed explicitly into the engine."""
    return datetime.now(UTC)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]
ManagerUser = Annotated[dict[str, Any], Depends(require_manager)]
Events = Annotated[EventPublisher, Depends(get_event_publisher)]
AsOf = Annotated[datetime, Depends(get_as_of)]
