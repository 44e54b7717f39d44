"""Availability endpoints."""

from fastapi import APIRouter, Path, status

from barshift.dependencies import AsOf, CurrentUser, DatabaseSession
from barshift.schemas.availability import (
    MONTH_PATTERN,
    AvailabilityResponse,
    AvailabilitySubmit,
)
from barshift.services.availability_service import AvailabilityService

router = APIRouter()


@router.get(
    "/{month}",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get my availability for a month",
)
async def get_my_availability(
    current_user: CurrentUser,
    db: DatabaseSession,
    month: str = Path(..., pattern=MONTH_PATTERN),
) -> AvailabilityResponse:
    """Availability grid of the authenticated staff member."""
    service = AvailabilityService(db)
    return await service.get_availability(current_user["id"], month)


@router.put(
    "/{month}",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Save my availability for a month",
)
async def submit_my_availability(
    data: AvailabilitySubmit,
    current_user: CurrentUser,
    db: DatabaseSession,
    as_of: AsOf,
    month: str = Path(..., pattern=MONTH_PATTERN),
) -> AvailabilityResponse:
    """
    Save the authenticated staff member's availability grid.

    Submitting locks the month; a draft can be saved with submit=false.

    Args:
        data: Grid keyed by ISO date
        current_user: Authenticated staff member
        db: Database session
        as_of: Request instant
        month: YYYY-MM

    Returns:
        Stored availability
    """
    service = AvailabilityService(db)
    return await service.submit_availability(current_user, month, data, as_of)
