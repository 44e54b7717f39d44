"""Tests for the shift trade state machine."""

from datetime import datetime, time, timedelta

import pytest
from sqlalchemy import update

from barshift.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateTransitionException,
    StaleTradeException,
    ValidationException,
)
from barshift.models import shift_assignments
from barshift.schemas.events import EventType
from barshift.schemas.overrides import OverrideStatus
from barshift.schemas.trades import TradeCreate, TradeDecline, TradeFilters, TradeStatus
from barshift.services.override_service import OverrideService
from barshift.services.roster_service import RosterService
from barshift.services.trade_service import TradeService
from factories import AS_OF, SHIFT_DATE


async def setup(factory, **venue_overrides):
    venue = await factory.venue(**venue_overrides)
    shift = await factory.shift(venue)
    alice = await factory.available_staff("Alice", venues_=[venue])
    bob = await factory.available_staff("Bob", venues_=[venue])
    manager = await factory.manager()
    assignment = await factory.assignment(shift, alice)
    return shift, alice, bob, manager, assignment


def proposal(shift, receiver):
    return TradeCreate(shift_id=shift["id"], receiver_id=receiver["id"], reason="Family dinner")


@pytest.mark.asyncio
async def test_trade_happy_path_moves_assignment(db_session, factory, events) -> None:
    shift, alice, bob, manager, assignment = await setup(factory)
    service = TradeService(db_session, events)

    trade = await service.propose_trade(proposal(shift, bob), alice, AS_OF)
    assert trade.status is TradeStatus.PROPOSED
    assert trade.assignment_id == assignment["id"]

    accepted = await service.accept_trade(trade.id, bob, AS_OF)
    assert accepted.status is TradeStatus.ACCEPTED
    roster = RosterService(db_session)
    assert await roster.find_assignment(shift["id"], alice["id"]) is not None

    approved = await service.approve_trade(trade.id, manager, AS_OF)

    assert approved.status is TradeStatus.APPROVED
    assert approved.approved_by == manager["id"]
    assert await roster.find_assignment(shift["id"], alice["id"]) is None
    moved = await roster.find_assignment(shift["id"], bob["id"])
    assert moved["id"] == assignment["id"]
    assert moved["slot"] == "BARTENDER"
    assert [e.event_type for e in events.events] == [
        EventType.TRADE_PROPOSED,
        EventType.TRADE_ACCEPTED,
        EventType.TRADE_APPROVED,
    ]


@pytest.mark.asyncio
async def test_proposer_must_hold_the_assignment(db_session, factory) -> None:
    shift, alice, bob, _, _ = await setup(factory)
    service = TradeService(db_session)

    with pytest.raises(ValidationException, match="do not hold"):
        await service.propose_trade(proposal(shift, alice), bob, AS_OF)
    with pytest.raises(ValidationException, match="yourself"):
        await service.propose_trade(proposal(shift, alice), alice, AS_OF)


@pytest.mark.asyncio
async def test_receiver_already_on_shift_rejected(db_session, factory) -> None:
    shift, alice, bob, _, _ = await setup(factory)
    await factory.assignment(shift, bob)

    with pytest.raises(ValidationException, match="already assigned"):
        await TradeService(db_session).propose_trade(proposal(shift, bob), alice, AS_OF)


@pytest.mark.asyncio
async def test_receiver_must_be_eligible(db_session, factory) -> None:
    venue = await factory.venue()
    shift = await factory.shift(venue, start=time(17, 0))
    alice = await factory.available_staff("Alice", venues_=[venue])
    dana = await factory.available_staff(
        "Dana", venues_=[venue], has_day_job=True, day_job_cutoff=time(18, 0)
    )
    await factory.assignment(shift, alice)
    service = TradeService(db_session)

    with pytest.raises(ValidationException, match="cutoff"):
        await service.propose_trade(proposal(shift, dana), alice, AS_OF)

    await factory.override(shift, dana, "cutoff", status="APPROVED")
    trade = await service.propose_trade(proposal(shift, dana), alice, AS_OF)
    assert trade.status is TradeStatus.PROPOSED


@pytest.mark.asyncio
async def test_approved_trade_activates_receiver_override(db_session, factory, events) -> None:
    venue = await factory.venue()
    shift = await factory.shift(venue, start=time(17, 0))
    alice = await factory.available_staff("Alice", venues_=[venue])
    dana = await factory.available_staff(
        "Dana", venues_=[venue], has_day_job=True, day_job_cutoff=time(18, 0)
    )
    manager = await factory.manager()
    await factory.assignment(shift, alice)
    waiver = await factory.override(shift, dana, "cutoff", status="APPROVED")
    service = TradeService(db_session, events)

    trade = await service.propose_trade(proposal(shift, dana), alice, AS_OF)
    await service.accept_trade(trade.id, dana, AS_OF)
    await service.approve_trade(trade.id, manager, AS_OF)

    override = await OverrideService(db_session).get_override(waiver["id"], manager)
    assert override.status is OverrideStatus.ACTIVE
    assert await RosterService(db_session).find_assignment(shift["id"], dana["id"]) is not None
    [activated] = events.of_type(EventType.OVERRIDE_ACTIVATED)
    assert activated.payload["staff_id"] == str(dana["id"])


@pytest.mark.asyncio
async def test_proposal_closes_before_deadline(db_session, factory) -> None:
    shift, alice, bob, _, _ = await setup(factory, trade_deadline_hours=48)
    starts_at = datetime.combine(SHIFT_DATE, time(18, 0), tzinfo=AS_OF.tzinfo)

    with pytest.raises(ValidationException, match="48 hours"):
        await TradeService(db_session).propose_trade(
            proposal(shift, bob), alice, starts_at - timedelta(hours=47)
        )

    trade = await TradeService(db_session).propose_trade(
        proposal(shift, bob), alice, starts_at - timedelta(hours=48)
    )
    assert trade.status is TradeStatus.PROPOSED


@pytest.mark.asyncio
async def test_one_open_trade_per_proposer_and_shift(db_session, factory) -> None:
    shift, alice, bob, _, _ = await setup(factory)
    service = TradeService(db_session)

    first = await service.propose_trade(proposal(shift, bob), alice, AS_OF)
    with pytest.raises(ConflictException):
        await service.propose_trade(proposal(shift, bob), alice, AS_OF)

    await service.cancel_trade(first.id, alice, AS_OF)
    again = await service.propose_trade(proposal(shift, bob), alice, AS_OF)
    assert again.status is TradeStatus.PROPOSED


@pytest.mark.asyncio
async def test_only_parties_may_act(db_session, factory) -> None:
    shift, alice, bob, manager, _ = await setup(factory)
    service = TradeService(db_session)
    trade = await service.propose_trade(proposal(shift, bob), alice, AS_OF)

    with pytest.raises(ForbiddenException):
        await service.accept_trade(trade.id, alice, AS_OF)
    with pytest.raises(ForbiddenException):
        await service.cancel_trade(trade.id, bob, AS_OF)
    with pytest.raises(ForbiddenException):
        await service.decline_trade(trade.id, TradeDecline(), manager, AS_OF)

    await service.accept_trade(trade.id, bob, AS_OF)
    with pytest.raises(ForbiddenException):
        await service.approve_trade(trade.id, bob, AS_OF)
    with pytest.raises(ForbiddenException):
        await service.decline_trade(trade.id, TradeDecline(), bob, AS_OF)


@pytest.mark.asyncio
async def test_transitions_follow_the_state_machine(db_session, factory, events) -> None:
    shift, alice, bob, manager, _ = await setup(factory)
    service = TradeService(db_session, events)
    trade = await service.propose_trade(proposal(shift, bob), alice, AS_OF)

    with pytest.raises(InvalidStateTransitionException):
        await service.approve_trade(trade.id, manager, AS_OF)

    declined = await service.decline_trade(
        trade.id, TradeDecline(reason="Working elsewhere"), bob, AS_OF
    )
    assert declined.status is TradeStatus.DECLINED
    assert declined.declined_by == bob["id"]
    assert declined.declined_reason == "Working elsewhere"

    with pytest.raises(InvalidStateTransitionException):
        await service.accept_trade(trade.id, bob, AS_OF)
    with pytest.raises(InvalidStateTransitionException):
        await service.cancel_trade(trade.id, alice, AS_OF)
    assert len(events.of_type(EventType.TRADE_DECLINED)) == 1


@pytest.mark.asyncio
async def test_manager_declines_accepted_trade(db_session, factory) -> None:
    shift, alice, bob, manager, _ = await setup(factory)
    service = TradeService(db_session)
    trade = await service.propose_trade(proposal(shift, bob), alice, AS_OF)
    await service.accept_trade(trade.id, bob, AS_OF)

    declined = await service.decline_trade(trade.id, TradeDecline(), manager, AS_OF)

    assert declined.status is TradeStatus.DECLINED
    assert await RosterService(db_session).find_assignment(shift["id"], alice["id"])


@pytest.mark.asyncio
async def test_stale_assignment_leaves_trade_accepted(db_session, factory) -> None:
    shift, alice, bob, manager, assignment = await setup(factory)
    cara = await factory.staff("Cara")
    service = TradeService(db_session)
    trade = await service.propose_trade(proposal(shift, bob), alice, AS_OF)
    await service.accept_trade(trade.id, bob, AS_OF)

    # The assignment is reassigned manually before approval
    await db_session.execute(
        update(shift_assignments)
        .where(shift_assignments.c.id == assignment["id"])
        .values(staff_id=cara["id"])
    )
    await db_session.commit()

    with pytest.raises(StaleTradeException):
        await service.approve_trade(trade.id, manager, AS_OF)

    current = await service.get_trade(trade.id, manager)
    assert current.status is TradeStatus.ACCEPTED
    roster = RosterService(db_session)
    assert await roster.find_assignment(shift["id"], bob["id"]) is None
    assert await roster.find_assignment(shift["id"], cara["id"])


@pytest.mark.asyncio
async def test_trades_visible_to_parties_and_managers(db_session, factory) -> None:
    shift, alice, bob, manager, _ = await setup(factory)
    outsider = await factory.staff("Olive")
    service = TradeService(db_session)
    trade = await service.propose_trade(proposal(shift, bob), alice, AS_OF)

    assert [t.id for t in await service.list_trades(TradeFilters(), bob)] == [trade.id]
    assert await service.list_trades(TradeFilters(), outsider) == []
    assert len(await service.list_trades(TradeFilters(staff_id=alice["id"]), manager)) == 1
    assert (await service.get_trade(trade.id, manager)).id == trade.id
