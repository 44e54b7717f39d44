"""Tests for the tip baseline calculator."""

from decimal import Decimal

import pytest

from barshift.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    InvalidStateTransitionException,
    ValidationException,
)
from barshift.schemas.events import EventType
from barshift.services.roster_service import RosterService
from barshift.services.tip_service import TipService, split_evenly
from factories import AS_OF


@pytest.mark.parametrize(
    ("total", "headcount", "per_person", "unallocated"),
    [
        (Decimal("300.00"), 3, Decimal("100.00"), Decimal("0.00")),
        (Decimal("100.00"), 3, Decimal("33.33"), Decimal("0.01")),
        (Decimal("0.05"), 6, Decimal("0.00"), Decimal("0.05")),
    ],
)
def test_split_rounds_down_and_reports_remainder(total, headcount, per_person, unallocated):
    assert split_evenly(total, headcount) == (per_person, unallocated)


def test_split_needs_someone_to_pay() -> None:
    with pytest.raises(ValidationException):
        split_evenly(Decimal("50.00"), 0)


async def staffed_shift(factory, headcount=3, **venue_overrides):
    venue = await factory.venue(**venue_overrides)
    shift = await factory.shift(venue, bartenders=headcount, barbacks=0, leads=0)
    crew = []
    for name in ["Alice", "Bob", "Cara", "Dev"][:headcount]:
        member = await factory.available_staff(name, venues_=[venue])
        await factory.assignment(shift, member)
        crew.append(member)
    return shift, crew


@pytest.mark.asyncio
async def test_baseline_writes_even_split(db_session, factory) -> None:
    shift, _ = await staffed_shift(factory)
    manager = await factory.manager()

    baseline = await TipService(db_session).calculate_baseline(
        shift["id"], Decimal("100.00"), manager, AS_OF
    )

    assert baseline.per_person == Decimal("33.33")
    assert baseline.unallocated == Decimal("0.01")
    assert baseline.currency == "USD"
    assert not baseline.tips_published
    rows = await RosterService(db_session).list_assignments(shift["id"])
    assert {Decimal(str(row["tip_amount"])) for row in rows} == {Decimal("33.33")}
    assert {row["tip_entered_by"] for row in rows} == {manager["id"]}


@pytest.mark.asyncio
async def test_publish_uses_entered_total_and_emits(db_session, factory, events) -> None:
    shift, crew = await staffed_shift(factory, headcount=2)
    manager = await factory.manager()
    service = TipService(db_session, events)

    with pytest.raises(ValidationException):
        await service.publish(shift["id"], manager, AS_OF)

    await service.calculate_baseline(shift["id"], Decimal("90.00"), manager, AS_OF)
    published = await service.publish(shift["id"], manager, AS_OF)

    assert published.tips_published
    assert published.tips_published_by == manager["id"]
    assert published.per_person == Decimal("45.00")
    [event] = events.of_type(EventType.TIPS_PUBLISHED)
    assert set(event.payload["staff_ids"]) == {str(m["id"]) for m in crew}


@pytest.mark.asyncio
async def test_recalculation_after_publish_goes_through_republish(db_session, factory) -> None:
    shift, _ = await staffed_shift(factory, headcount=2)
    manager = await factory.manager()
    service = TipService(db_session)
    await service.publish(shift["id"], manager, AS_OF, total=Decimal("60.00"))

    with pytest.raises(InvalidStateTransitionException):
        await service.calculate_baseline(shift["id"], Decimal("80.00"), manager, AS_OF)

    late = await factory.available_staff("Late")
    await factory.assignment(shift, late)

    amounts = {
        row["staff_id"]: row["tip_amount"]
        for row in await RosterService(db_session).list_assignments(shift["id"])
    }
    assert amounts.pop(late["id"]) is None
    assert {Decimal(str(amount)) for amount in amounts.values()} == {Decimal("30.00")}

    republished = await service.publish(shift["id"], manager, AS_OF, total=Decimal("90.00"))

    assert republished.per_person == Decimal("30.00")
    assert len(republished.assignments) == 3


@pytest.mark.asyncio
async def test_tips_need_manager_and_enabled_pool(db_session, factory) -> None:
    shift, crew = await staffed_shift(factory, headcount=1)
    service = TipService(db_session)

    with pytest.raises(ForbiddenException):
        await service.calculate_baseline(shift["id"], Decimal("10.00"), crew[0], AS_OF)

    disabled, _ = await staffed_shift(factory, headcount=1, tip_pool_enabled=False)
    with pytest.raises(BadRequestException):
        await service.calculate_baseline(
            disabled["id"], Decimal("10.00"), await factory.manager(), AS_OF
        )


@pytest.mark.asyncio
async def test_empty_roster_cannot_be_split(db_session, factory) -> None:
    venue = await factory.venue()
    shift = await factory.shift(venue)

    with pytest.raises(ValidationException):
        await TipService(db_session).calculate_baseline(
            shift["id"], Decimal("10.00"), await factory.manager(), AS_OF
        )
