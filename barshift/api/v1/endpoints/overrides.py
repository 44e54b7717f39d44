"""Constraint override endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from barshift.dependencies import AsOf, CurrentUser, DatabaseSession, Events, ManagerUser
from barshift.schemas.overrides import (
    OverrideCreate,
    OverrideDecision,
    OverrideFilters,
    OverrideResponse,
    OverrideStatus,
)
from barshift.services.override_service import OverrideService

router = APIRouter()


@router.post(
    "/",
    response_model=OverrideResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an override",
)
async def create_override(
    data: OverrideCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> OverrideResponse:
    """
    Request an exception to a soft constraint for one staff member on one shift.

    Args:
        data: Override request
        current_user: Manager or the affected staff member
        db: Database session
        events: Event publisher
        as_of: Request instant

    Returns:
        Created override
    """
    service = OverrideService(db, events)
    return await service.create_override(data, current_user, as_of)


@router.get(
    "/",
    response_model=list[OverrideResponse],
    status_code=status.HTTP_200_OK,
    summary="List overrides",
)
async def list_overrides(
    current_user: CurrentUser,
    db: DatabaseSession,
    shift_id: UUID | None = Query(None),
    staff_id: UUID | None = Query(None),
    status_filter: OverrideStatus | None = Query(None, alias="status"),
) -> list[OverrideResponse]:
    """List overrides visible to the authenticated staff member."""
    filters = OverrideFilters(shift_id=shift_id, staff_id=staff_id, status=status_filter)
    service = OverrideService(db)
    return await service.list_overrides(filters, current_user)


@router.get(
    "/{override_id}",
    response_model=OverrideResponse,
    status_code=status.HTTP_200_OK,
    summary="Get override by ID",
)
async def get_override(
    override_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> OverrideResponse:
    """Get an override with its approvals and history."""
    service = OverrideService(db)
    return await service.get_override(override_id, current_user)


@router.post(
    "/{override_id}/decision",
    response_model=OverrideResponse,
    status_code=status.HTTP_200_OK,
    summary="Approve or decline an override",
)
async def decide_override(
    override_id: UUID,
    data: OverrideDecision,
    current_user: CurrentUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> OverrideResponse:
    """
    Record the authenticated approver's decision.

    A single decline settles the override as DECLINED. It becomes APPROVED
    once every required approver has approved.
    """
    service = OverrideService(db, events)
    return await service.decide(override_id, data, current_user, as_of)


@router.post(
    "/{override_id}/activate",
    response_model=OverrideResponse,
    status_code=status.HTTP_200_OK,
    summary="Activate an approved override",
)
async def activate_override(
    override_id: UUID,
    manager: ManagerUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> OverrideResponse:
    """Mark an approved override active for an existing assignment."""
    service = OverrideService(db, events)
    return await service.activate(override_id, manager, as_of)
