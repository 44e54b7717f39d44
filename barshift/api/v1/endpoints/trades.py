"""Shift trade endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from barshift.dependencies import AsOf, CurrentUser, DatabaseSession, Events, ManagerUser
from barshift.schemas.trades import (
    TradeCreate,
    TradeDecline,
    TradeFilters,
    TradeResponse,
    TradeStatus,
)
from barshift.services.trade_service import TradeService

router = APIRouter()


@router.post(
    "/",
    response_model=TradeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Propose a trade",
)
async def propose_trade(
    data: TradeCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> TradeResponse:
    """
    Offer the authenticated staff member's assignment to a colleague.

    Args:
        data: Shift and receiver
        current_user: Proposer
        db: Database session
        events: Event publisher
        as_of: Request instant

    Returns:
        Proposed trade
    """
    service = TradeService(db, events)
    return await service.propose_trade(data, current_user, as_of)


@router.get(
    "/",
    response_model=list[TradeResponse],
    status_code=status.HTTP_200_OK,
    summary="List trades",
)
async def list_trades(
    current_user: CurrentUser,
    db: DatabaseSession,
    shift_id: UUID | None = Query(None),
    staff_id: UUID | None = Query(None),
    status_filter: TradeStatus | None = Query(None, alias="status"),
) -> list[TradeResponse]:
    """List trades visible to the authenticated staff member."""
    filters = TradeFilters(shift_id=shift_id, staff_id=staff_id, status=status_filter)
    service = TradeService(db)
    return await service.list_trades(filters, current_user)


@router.get(
    "/{trade_id}",
    response_model=TradeResponse,
    status_code=status.HTTP_200_OK,
    summary="Get trade by ID",
)
async def get_trade(
    trade_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> TradeResponse:
    """Get a trade the authenticated staff member can see."""
    service = TradeService(db)
    return await service.get_trade(trade_id, current_user)


@router.post(
    "/{trade_id}/accept",
    response_model=TradeResponse,
    status_code=status.HTTP_200_OK,
    summary="Accept a trade",
)
async def accept_trade(
    trade_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> TradeResponse:
    """Receiver accepts; the assignment moves only on manager approval."""
    service = TradeService(db, events)
    return await service.accept_trade(trade_id, current_user, as_of)


@router.post(
    "/{trade_id}/decline",
    response_model=TradeResponse,
    status_code=status.HTTP_200_OK,
    summary="Decline a trade",
)
async def decline_trade(
    trade_id: UUID,
    data: TradeDecline,
    current_user: CurrentUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> TradeResponse:
    """Receiver declines a proposal, or a manager declines an accepted trade."""
    service = TradeService(db, events)
    return await service.decline_trade(trade_id, data, current_user, as_of)


@router.post(
    "/{trade_id}/cancel",
    response_model=TradeResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel a trade",
)
async def cancel_trade(
    trade_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> TradeResponse:
    """Proposer withdraws an open trade."""
    service = TradeService(db, events)
    return await service.cancel_trade(trade_id, current_user, as_of)


@router.post(
    "/{trade_id}/approve",
    response_model=TradeResponse,
    status_code=status.HTTP_200_OK,
    summary="Approve a trade",
)
async def approve_trade(
    trade_id: UUID,
    manager: ManagerUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> TradeResponse:
    """
    Swap the assignment to the receiver and settle the trade.

    A stale trade answers 409 and stays ACCEPTED.
    """
    service = TradeService(db, events)
    return await service.approve_trade(trade_id, manager, as_of)
