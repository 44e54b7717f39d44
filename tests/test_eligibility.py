"""Tests for the eligibility filter."""

from datetime import datetime, time, timedelta

import pytest

from barshift.schemas.overrides import ViolationType
from barshift.schemas.staff import SlotKind
from barshift.services.eligibility_service import EligibilityService
from factories import AS_OF, SHIFT_DATE, full_month


def ids(candidates):
    return {c.id for c in candidates}


@pytest.mark.asyncio
async def test_available_bartender_is_eligible(db_session, factory) -> None:
    """An active bartender at the venue with submitted availability is eligible."""
    venue = await factory.venue()
    shift = await factory.shift(venue)
    alice = await factory.available_staff("Alice", venues_=[venue])

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert ids(pool.eligible) == {alice["id"]}
    assert pool.eligible[0].violations == []
    assert not pool.blocked


@pytest.mark.asyncio
async def test_staff_outside_venue_and_wrong_role_are_not_candidates(db_session, factory) -> None:
    """Venue membership and role gate the pool."""
    venue = await factory.venue()
    other = await factory.venue(name="Elsewhere")
    shift = await factory.shift(venue)
    outsider = await factory.available_staff("Olive", venues_=[other])
    barback = await factory.available_staff("Cara", role="BARBACK", venues_=[venue])
    await factory.available_staff("Ivan", venues_=[venue], status="INACTIVE")

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert not pool.eligible
    assert pool.excluded == {outsider["id"]: "Does not work at this venue"}
    assert barback["id"] not in pool.excluded


@pytest.mark.asyncio
async def test_missing_or_unsubmitted_availability_excludes(db_session, factory) -> None:
    """No data means ineligible, not available."""
    venue = await factory.venue()
    shift = await factory.shift(venue)
    missing = await factory.staff("Milo", venues_=[venue])
    draft = await factory.staff("Dina", venues_=[venue])
    await factory.availability(draft, submitted=False)

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert not pool.eligible
    assert "No availability" in pool.excluded[missing["id"]]
    assert "not submitted" in pool.excluded[draft["id"]]


@pytest.mark.asyncio
async def test_draft_availability_counts_once_deadline_passes(db_session, factory) -> None:
    """A draft locks implicitly after the venue's deadline day."""
    venue = await factory.venue(availability_deadline_day=10)
    shift = await factory.shift(venue)
    draft = await factory.staff("Dina", venues_=[venue])
    await factory.availability(draft, submitted=False)

    after_deadline = AS_OF + timedelta(days=10)
    pool = await EligibilityService(db_session).build_pool(
        shift, SlotKind.BARTENDER, after_deadline
    )

    assert ids(pool.eligible) == {draft["id"]}


@pytest.mark.asyncio
async def test_day_marked_unavailable_is_request_off(db_session, factory) -> None:
    """An explicit day off blocks the candidate until a request_off override exists."""
    venue = await factory.venue()
    shift = await factory.shift(venue)
    grid = full_month()
    grid[SHIFT_DATE.isoformat()] = {"available": False, "note": "Wedding"}
    rae = await factory.staff("Rae", venues_=[venue])
    await factory.availability(rae, data=grid)

    service = EligibilityService(db_session)
    pool = await service.build_pool(shift, SlotKind.BARTENDER, AS_OF)
    assert ids(pool.blocked) == {rae["id"]}
    assert pool.blocked[0].violations == [ViolationType.REQUEST_OFF]

    override = await factory.override(shift, rae, "request_off", status="APPROVED")
    pool = await service.build_pool(shift, SlotKind.BARTENDER, AS_OF)
    assert ids(pool.eligible) == {rae["id"]}
    assert pool.eligible[0].waiving_override_ids == [override["id"]]


@pytest.mark.asyncio
async def test_time_windows_must_cover_the_shift(db_session, factory) -> None:
    """Partial-day windows only admit shifts fully inside one of them."""
    venue = await factory.venue()
    shift = await factory.shift(venue, start=time(18, 0), end=time(23, 0))

    covering = full_month()
    covering[SHIFT_DATE.isoformat()] = {
        "available": True,
        "windows": [{"start": "17:00", "end": "23:30"}],
    }
    partial = full_month()
    partial[SHIFT_DATE.isoformat()] = {
        "available": True,
        "windows": [{"start": "19:00", "end": "23:00"}],
    }
    wide = await factory.staff("Wes", venues_=[venue])
    await factory.availability(wide, data=covering)
    narrow = await factory.staff("Nia", venues_=[venue])
    await factory.availability(narrow, data=partial)

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert ids(pool.eligible) == {wide["id"]}
    assert ids(pool.blocked) == {narrow["id"]}


@pytest.mark.asyncio
async def test_date_missing_from_grid_excludes(db_session, factory) -> None:
    """A grid with no entry for the shift date is no data for that date."""
    venue = await factory.venue()
    shift = await factory.shift(venue)
    grid = full_month()
    del grid[SHIFT_DATE.isoformat()]
    gap = await factory.staff("Gus", venues_=[venue])
    await factory.availability(gap, data=grid)

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert pool.excluded[gap["id"]] == "No availability recorded for this date"


@pytest.mark.asyncio
async def test_overlapping_assignment_is_double_booking(db_session, factory) -> None:
    """An overlapping shift blocks; a back-to-back one does not."""
    venue = await factory.venue()
    other_venue = await factory.venue(name="Second Bar")
    shift = await factory.shift(venue, start=time(18, 0), end=time(23, 0))
    overlapping = await factory.shift(other_venue, start=time(16, 0), end=time(19, 0))
    earlier = await factory.shift(other_venue, start=time(12, 0), end=time(18, 0))

    busy = await factory.available_staff("Bea", venues_=[venue, other_venue])
    await factory.assignment(overlapping, busy)
    free = await factory.available_staff("Fay", venues_=[venue, other_venue])
    await factory.assignment(earlier, free)

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert ids(pool.eligible) == {free["id"]}
    assert ids(pool.blocked) == {busy["id"]}
    assert pool.blocked[0].violations == [ViolationType.DOUBLE_BOOKING]


@pytest.mark.asyncio
async def test_approved_override_waives_double_booking(db_session, factory) -> None:
    venue = await factory.venue()
    other_venue = await factory.venue(name="Second Bar")
    shift = await factory.shift(venue, start=time(18, 0), end=time(23, 0))
    overlapping = await factory.shift(other_venue, start=time(16, 0), end=time(19, 0))
    busy = await factory.available_staff("Bea", venues_=[venue, other_venue])
    await factory.assignment(overlapping, busy)
    waiver = await factory.override(shift, busy, "double_booking", status="APPROVED")

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert ids(pool.eligible) == {busy["id"]}
    assert pool.eligible[0].waiving_override_ids == [waiver["id"]]


@pytest.mark.asyncio
async def test_overnight_shift_overlaps_next_day(db_session, factory) -> None:
    """A shift past midnight overlaps an early shift on the following date."""
    venue = await factory.venue()
    late = await factory.shift(
        venue, on=SHIFT_DATE - timedelta(days=1), start=time(22, 0), end=time(2, 0)
    )
    early = await factory.shift(venue, start=time(1, 0), end=time(5, 0))
    owl = await factory.available_staff("Owl", venues_=[venue])
    await factory.assignment(late, owl)

    pool = await EligibilityService(db_session).build_pool(early, SlotKind.BARTENDER, AS_OF)

    assert ids(pool.blocked) == {owl["id"]}


@pytest.mark.asyncio
async def test_external_block_is_hard_exclusion(db_session, factory) -> None:
    """Calendar blocks cannot be waived."""
    venue = await factory.venue()
    shift = await factory.shift(venue)
    blocked = await factory.available_staff("Cal", venues_=[venue])
    await factory.block(
        blocked,
        datetime.combine(SHIFT_DATE, time(20, 0)),
        datetime.combine(SHIFT_DATE, time(21, 0)),
    )

    pool = await EligibilityService(db_session).build_pool(shift, SlotKind.BARTENDER, AS_OF)

    assert pool.excluded[blocked["id"]] == "Conflicts with an external calendar block"


@pytest.mark.asyncio
async def test_day_job_cutoff(db_session, factory) -> None:
    """Shifts starting before the cutoff are blocked; starting at it is fine."""
    venue = await factory.venue()
    five = await factory.shift(venue, start=time(17, 0), end=time(23, 0))
    dana = await factory.available_staff(
        "Dana", venues_=[venue], has_day_job=True, day_job_cutoff=time(18, 0)
    )
    eli = await factory.available_staff(
        "Eli", venues_=[venue], has_day_job=True, day_job_cutoff=time(17, 0)
    )

    service = EligibilityService(db_session)
    pool = await service.build_pool(five, SlotKind.BARTENDER, AS_OF)

    assert ids(pool.eligible) == {eli["id"]}
    assert ids(pool.blocked) == {dana["id"]}
    assert pool.blocked[0].violations == [ViolationType.CUTOFF]


@pytest.mark.asyncio
async def test_pending_override_does_not_waive(db_session, factory) -> None:
    """Only APPROVED or ACTIVE overrides promote a candidate."""
    venue = await factory.venue()
    shift = await factory.shift(venue, start=time(17, 0))
    dana = await factory.available_staff(
        "Dana", venues_=[venue], has_day_job=True, day_job_cutoff=time(18, 0)
    )
    await factory.override(shift, dana, "cutoff", status="PENDING")

    service = EligibilityService(db_session)
    pool = await service.build_pool(shift, SlotKind.BARTENDER, AS_OF)
    assert ids(pool.blocked) == {dana["id"]}

    await factory.override(shift, dana, "cutoff", status="ACTIVE")
    pool = await service.build_pool(shift, SlotKind.BARTENDER, AS_OF)
    assert ids(pool.eligible) == {dana["id"]}


@pytest.mark.asyncio
async def test_lead_slot_needs_lead_or_lead_shortage_override(db_session, factory) -> None:
    """Non-lead bartenders reach the lead pool only through an override."""
    venue = await factory.venue()
    shift = await factory.shift(venue)
    lead = await factory.available_staff("Alice", venues_=[venue], is_lead=True)
    bob = await factory.available_staff("Bob", venues_=[venue])

    service = EligibilityService(db_session)
    pool = await service.build_pool(shift, SlotKind.LEAD, AS_OF)
    assert ids(pool.eligible) == {lead["id"]}
    assert ids(pool.blocked) == {bob["id"]}
    assert pool.blocked[0].violations == [ViolationType.LEAD_SHORTAGE]

    await factory.override(shift, bob, "lead_shortage")
    pool = await service.build_pool(shift, SlotKind.LEAD, AS_OF)
    assert ids(pool.eligible) == {lead["id"], bob["id"]}


@pytest.mark.asyncio
async def test_exclude_staff_ids_skips_current_roster(db_session, factory) -> None:
    """Staff already on the shift are left out of the pool."""
    venue = await factory.venue()
    shift = await factory.shift(venue)
    alice = await factory.available_staff("Alice", venues_=[venue])
    bob = await factory.available_staff("Bob", venues_=[venue])

    pool = await EligibilityService(db_session).build_pool(
        shift, SlotKind.BARTENDER, AS_OF, exclude_staff_ids={alice["id"]}
    )

    assert ids(pool.eligible) == {bob["id"]}


@pytest.mark.asyncio
async def test_evaluate_staff_reports_reason(db_session, factory) -> None:
    """Single-candidate evaluation explains why someone is not eligible."""
    venue = await factory.venue()
    shift = await factory.shift(venue, start=time(17, 0))
    dana = await factory.available_staff(
        "Dana", venues_=[venue], has_day_job=True, day_job_cutoff=time(18, 0)
    )
    barback = await factory.available_staff("Cara", role="BARBACK", venues_=[venue])

    service = EligibilityService(db_session)
    candidate, reason = await service.evaluate_staff(shift, SlotKind.BARTENDER, dana["id"], AS_OF)
    assert candidate is not None
    assert "cutoff" in reason

    candidate, reason = await service.evaluate_staff(
        shift, SlotKind.BARTENDER, barback["id"], AS_OF
    )
    assert candidate is None
    assert reason == "Not an active bartender"
