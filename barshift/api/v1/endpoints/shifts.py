"""Shift staffing endpoints."""

import asyncio
from uuid import UUID

from fastapi import APIRouter, Query, status

from barshift.config import settings
from barshift.core.exceptions import OperationTimeoutException
from barshift.dependencies import AsOf, CurrentUser, DatabaseSession, Events, ManagerUser
from barshift.schemas.shifts import (
    AutoFillResult,
    AutoScheduleRequest,
    AutoScheduleResult,
    CandidatePoolResponse,
    RosterResponse,
)
from barshift.schemas.staff import SlotKind
from barshift.services.auto_fill_service import AutoFillService
from barshift.services.roster_service import RosterService

router = APIRouter()


@router.post(
    "/{shift_id}/auto-fill",
    response_model=AutoFillResult,
    status_code=status.HTTP_200_OK,
    summary="Auto-fill a shift",
)
async def auto_fill_shift(
    shift_id: UUID,
    manager: ManagerUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> AutoFillResult:
    """
    Fill a shift's open slots from the ranked eligible pool.

    Unfilled slots are reported in the summary, not raised. The call is
    bounded by the configured deadline; assignments committed before the
    deadline stay in place.

    Raises:
        OperationTimeoutException: If the deadline is exceeded
    """
    service = AutoFillService(db, events)
    try:
        return await asyncio.wait_for(
            service.auto_fill(shift_id, as_of),
            timeout=settings.auto_fill_timeout_seconds,
        )
    except TimeoutError:
        raise OperationTimeoutException(
            f"Auto-fill for shift {shift_id} exceeded {settings.auto_fill_timeout_seconds}s"
        )


@router.post(
    "/auto-schedule",
    response_model=AutoScheduleResult,
    status_code=status.HTTP_200_OK,
    summary="Auto-fill under-staffed shifts in a range",
)
async def auto_schedule(
    data: AutoScheduleRequest,
    manager: ManagerUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> AutoScheduleResult:
    """Run auto-fill over every under-staffed shift for a venue and date range."""
    service = AutoFillService(db, events)
    return await service.auto_schedule(
        as_of,
        venue_id=data.venue_id,
        start_date=data.start_date,
        end_date=data.end_date,
    )


@router.get(
    "/{shift_id}/candidates",
    response_model=CandidatePoolResponse,
    status_code=status.HTTP_200_OK,
    summary="Preview candidates for a slot",
)
async def list_candidates(
    shift_id: UUID,
    manager: ManagerUser,
    db: DatabaseSession,
    as_of: AsOf,
    slot: SlotKind = Query(SlotKind.BARTENDER),
) -> CandidatePoolResponse:
    """
    Ranked eligible candidates and override-eligible ones for a slot.

    Nothing is assigned.
    """
    service = AutoFillService(db)
    return await service.find_candidates(shift_id, slot, as_of)


@router.get(
    "/{shift_id}/roster",
    response_model=RosterResponse,
    status_code=status.HTTP_200_OK,
    summary="Get shift roster",
)
async def get_roster(
    shift_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> RosterResponse:
    """Shift details with its current assignments."""
    service = RosterService(db)
    return await service.get_roster(shift_id)
