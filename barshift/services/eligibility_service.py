"""Eligibility filter: builds the candidate pool for a shift slot."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.timeframes import (
    local_date,
    month_key,
    parse_month,
    shift_window,
    windows_overlap,
)
from barshift.models.availability import availabilities, external_blocks
from barshift.models.overrides import overrides
from barshift.models.shifts import shift_assignments, shifts
from barshift.models.staff import staff_members
from barshift.models.venues import venues
from barshift.schemas.availability import AvailabilityGrid
from barshift.schemas.overrides import OverrideStatus, ViolationType
from barshift.schemas.staff import SlotKind, StaffRole, StaffStatus

logger = structlog.get_logger(__name__)

# Override statuses that unlock a waivable violation. APPROVED waives every
# type, double_booking included; the override turns ACTIVE once assigned.
WAIVING_STATUSES = (OverrideStatus.APPROVED.value, OverrideStatus.ACTIVE.value)


@dataclass
class Candidate:
    """A staff member evaluated for one slot of one shift."""

    staff: dict[str, Any]
    slot: SlotKind
    violations: list[ViolationType] = field(default_factory=list)
    waivers: dict[ViolationType, dict[str, Any]] = field(default_factory=dict)

    @property
    def id(self) -> UUID:
        return self.staff["id"]

    @property
    def name(self) -> str:
        return self.staff["name"]

    @property
    def is_lead(self) -> bool:
        return bool(self.staff["is_lead"])

    @property
    def unwaived(self) -> list[ViolationType]:
        """Violations not covered by an approved or active override."""
        return [v for v in self.violations if v not in self.waivers]

    @property
    def eligible(self) -> bool:
        return not self.unwaived

    @property
    def waiving_override_ids(self) -> list[UUID]:
        return [row["id"] for row in self.waivers.values()]

    def rank_at(self, venue_id: UUID) -> int | None:
        """Explicit priority rank at a venue, if one is set."""
        rankings = self.staff.get("venue_rankings") or {}
        value = rankings.get(str(venue_id))
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value


@dataclass
class CandidatePool:
    """Outcome of filtering the staff pool for one slot."""

    shift: dict[str, Any]
    slot: SlotKind
    eligible: list[Candidate] = field(default_factory=list)
    # Excluded only by waivable constraints; an override would admit them
    blocked: list[Candidate] = field(default_factory=list)
    # Hard exclusions, staff id -> reason
    excluded: dict[UUID, str] = field(default_factory=dict)


def staff_role_for(slot: SlotKind) -> StaffRole:
    """Staff role a slot draws from."""
    return slot.role


def availability_is_locked(
    record: dict[str, Any],
    deadline_day: int,
    as_of: datetime,
) -> bool:
    """
    Whether an availability record counts as final.

    Submitted or explicitly locked records are final, and so is any record
    once the venue's deadline day of that month has passed.
    """
    if record["is_locked"] or record["submitted_at"] is not None:
        return True
    year, month = parse_month(record["month"])
    return local_date(as_of) > date(year, month, deadline_day)


def covers_window(grid: AvailabilityGrid, window: tuple[datetime, datetime]) -> bool | None:
    """
    Check an availability grid against a shift window.

    Returns:
        True if available for the whole window, False if marked unavailable,
        None if the grid has no entry for the shift's date
    """
    starts_at, ends_at = window
    day = grid.day(starts_at.date())
    if day is None:
        return None
    if not day.available:
        return False
    if day.windows is None:
        return True

    for slot in day.windows:
        slot_window = shift_window(starts_at.date(), slot.start, slot.end)
        if slot_window[0] <= starts_at and ends_at <= slot_window[1]:
            return True
    return False


class EligibilityService:
    """Service for evaluating staff eligibility against a shift."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def build_pool(
        self,
        shift: dict[str, Any],
        slot: SlotKind,
        as_of: datetime,
        exclude_staff_ids: Iterable[UUID] = (),
        staff_ids: Iterable[UUID] | None = None,
    ) -> CandidatePool:
        """
        Evaluate every active staff member of the slot's role for a shift.

        Args:
            shift: Shift row
            slot: Slot being filled
            as_of: Instant the evaluation is made at
            exclude_staff_ids: Staff to leave out (already on this shift)
            staff_ids: Restrict evaluation to these staff members

        Returns:
            Eligible, override-eligible and excluded candidates
        """
        pool = CandidatePool(shift=shift, slot=slot)
        excluded_ids = set(exclude_staff_ids)

        conditions = [
            staff_members.c.role == staff_role_for(slot).value,
            staff_members.c.status == StaffStatus.ACTIVE.value,
        ]
        if staff_ids is not None:
            conditions.append(staff_members.c.id.in_(list(staff_ids)))

        result = await self.db.execute(select(staff_members).where(and_(*conditions)))
        staff_rows = [dict(row) for row in result.mappings().all() if row["id"] not in excluded_ids]
        if not staff_rows:
            return pool

        ids = [row["id"] for row in staff_rows]
        window = shift_window(shift["date"], shift["start_time"], shift["end_time"])

        deadline_day = await self._deadline_day(shift["venue_id"])
        availability_by_staff = await self._availability(ids, month_key(shift["date"]))
        booked = await self._booked_staff(ids, shift, window)
        blocked_by_calendar = await self._calendar_blocked(ids, window)
        waivers = await self._waivers(ids, shift["id"])

        for staff in staff_rows:
            candidate = Candidate(staff=staff, slot=slot)
            reason = self._evaluate(
                candidate,
                shift,
                window,
                availability_by_staff.get(staff["id"]),
                deadline_day,
                as_of,
                booked,
                blocked_by_calendar,
            )
            candidate.waivers = {
                violation: row
                for (staff_id, violation), row in waivers.items()
                if staff_id == staff["id"] and violation in candidate.violations
            }

            if reason is not None:
                pool.excluded[staff["id"]] = reason
            elif candidate.eligible:
                pool.eligible.append(candidate)
            else:
                pool.blocked.append(candidate)

        logger.debug(
            "candidate_pool_built",
            shift_id=str(shift["id"]),
            slot=slot.value,
            eligible=len(pool.eligible),
            blocked=len(pool.blocked),
            excluded=len(pool.excluded),
        )
        return pool

    async def evaluate_staff(
        self,
        shift: dict[str, Any],
        slot: SlotKind,
        staff_id: UUID,
        as_of: datetime,
    ) -> tuple[Candidate | None, str | None]:
        """
        Evaluate a single staff member for a slot.

        Returns:
            The candidate (eligible or blocked) and, when not eligible, a reason
        """
        pool = await self.build_pool(shift, slot, as_of, staff_ids=[staff_id])
        if pool.eligible:
            return pool.eligible[0], None
        if pool.blocked:
            candidate = pool.blocked[0]
            violations = ", ".join(v.value for v in candidate.unwaived)
            return candidate, f"Blocked by {violations} without an approved override"
        if staff_id in pool.excluded:
            return None, pool.excluded[staff_id]
        return None, f"Not an active {staff_role_for(slot).value.lower()}"

    def _evaluate(
        self,
        candidate: Candidate,
        shift: dict[str, Any],
        window: tuple[datetime, datetime],
        availability: dict[str, Any] | None,
        deadline_day: int,
        as_of: datetime,
        booked: set[UUID],
        blocked_by_calendar: set[UUID],
    ) -> str | None:
        """Record waivable violations on the candidate; return a hard exclusion reason."""
        staff = candidate.staff

        if candidate.slot is SlotKind.LEAD and not staff["is_lead"]:
            candidate.violations.append(ViolationType.LEAD_SHORTAGE)

        if str(shift["venue_id"]) not in [str(v) for v in staff["preferred_venues_order"] or []]:
            return "Does not work at this venue"

        if availability is None:
            return "No availability submitted for this month"
        if not availability_is_locked(availability, deadline_day, as_of):
            return "Availability for this month is not submitted"

        try:
            grid = AvailabilityGrid.model_validate(availability["data"])
        except PydanticValidationError:
            logger.warning("availability_grid_invalid", staff_id=str(staff["id"]))
            return "Availability data is malformed"

        covered = covers_window(grid, window)
        if covered is None:
            return "No availability recorded for this date"
        if not covered:
            candidate.violations.append(ViolationType.REQUEST_OFF)

        if staff["id"] in blocked_by_calendar:
            return "Conflicts with an external calendar block"

        if staff["id"] in booked:
            candidate.violations.append(ViolationType.DOUBLE_BOOKING)

        cutoff = staff["day_job_cutoff"]
        if staff["has_day_job"] and cutoff is not None and shift["start_time"] < cutoff:
            candidate.violations.append(ViolationType.CUTOFF)

        return None

    async def _deadline_day(self, venue_id: UUID) -> int:
        result = await self.db.execute(
            select(venues.c.availability_deadline_day).where(venues.c.id == venue_id)
        )
        return result.scalar_one()

    async def _availability(self, ids: list[UUID], month: str) -> dict[UUID, dict[str, Any]]:
        result = await self.db.execute(
            select(availabilities).where(
                availabilities.c.staff_id.in_(ids),
                availabilities.c.month == month,
            )
        )
        return {row["staff_id"]: dict(row) for row in result.mappings().all()}

    async def _booked_staff(
        self,
        ids: list[UUID],
        shift: dict[str, Any],
        window: tuple[datetime, datetime],
    ) -> set[UUID]:
        """Staff holding an assignment on another shift overlapping the window."""
        query = (
            select(
                shift_assignments.c.staff_id,
                shifts.c.date,
                shifts.c.start_time,
                shifts.c.end_time,
            )
            .join(shifts, shift_assignments.c.shift_id == shifts.c.id)
            .where(
                shift_assignments.c.staff_id.in_(ids),
                shift_assignments.c.shift_id != shift["id"],
                shifts.c.date.between(
                    shift["date"] - timedelta(days=1),
                    shift["date"] + timedelta(days=1),
                ),
            )
        )
        result = await self.db.execute(query)

        booked: set[UUID] = set()
        for row in result.mappings().all():
            other = shift_window(row["date"], row["start_time"], row["end_time"])
            if windows_overlap(window, other):
                booked.add(row["staff_id"])
        return booked

    async def _calendar_blocked(
        self,
        ids: list[UUID],
        window: tuple[datetime, datetime],
    ) -> set[UUID]:
        result = await self.db.execute(
            select(external_blocks.c.staff_id).where(
                external_blocks.c.staff_id.in_(ids),
                external_blocks.c.starts_at < window[1],
                external_blocks.c.ends_at > window[0],
            )
        )
        return set(result.scalars().all())

    async def _waivers(
        self,
        ids: list[UUID],
        shift_id: UUID,
    ) -> dict[tuple[UUID, ViolationType], dict[str, Any]]:
        result = await self.db.execute(
            select(overrides)
            .where(
                overrides.c.shift_id == shift_id,
                overrides.c.staff_id.in_(ids),
                overrides.c.status.in_(WAIVING_STATUSES),
            )
            .order_by(overrides.c.created_at, overrides.c.id)
        )
        waivers: dict[tuple[UUID, ViolationType], dict[str, Any]] = {}
        for row in result.mappings().all():
            key = (row["staff_id"], ViolationType(row["violation_type"]))
            waivers.setdefault(key, dict(row))
        return waivers
