"""Auto-fill assigner: greedy, ranked fill of a shift's open slots."""

from collections import Counter
from datetime import date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.events import EventPublisher
from barshift.core.exceptions import (
    AppException,
    ConcurrencyConflictException,
    ValidationException,
)
from barshift.core.timeframes import local_date
from barshift.models.shifts import shift_assignments, shifts
from barshift.schemas.events import EventType
from barshift.schemas.shifts import (
    AssignmentResponse,
    AutoFillResult,
    AutoScheduleResult,
    AutoScheduleShiftResult,
    CandidatePoolResponse,
    CandidateResponse,
    SlotSummary,
    UnfilledSlot,
)
from barshift.schemas.staff import FILL_ORDER, SlotKind
from barshift.services.eligibility_service import Candidate, EligibilityService
from barshift.services.override_service import OverrideService
from barshift.services.ranking import rank_candidates
from barshift.services.roster_service import RosterService

logger = structlog.get_logger(__name__)

NO_ELIGIBLE_CANDIDATES = "no eligible candidates"


def open_slots(shift: dict[str, Any], filled: Counter) -> dict[SlotKind, int]:
    """
    Slots still open per category.

    A lead occupies one of the bartender slots, so plain bartenders are only
    needed for whatever the leads do not already cover.
    """
    bartenders_open = max(
        0,
        shift["bartenders_required"] - filled[SlotKind.LEAD] - filled[SlotKind.BARTENDER],
    )
    # A lead can only take a bartender slot that is still free
    leads_open = min(
        max(0, shift["leads_required"] - filled[SlotKind.LEAD]),
        bartenders_open,
    )
    barbacks_open = max(0, shift["barbacks_required"] - filled[SlotKind.BARBACK])
    return {
        SlotKind.LEAD: leads_open,
        SlotKind.BARTENDER: bartenders_open,
        SlotKind.BARBACK: barbacks_open,
    }


def slot_shortfall(shift: dict[str, Any], filled: Counter) -> dict[SlotKind, int]:
    """
    Requirements still unmet per category.

    Same as open_slots except that missing leads are counted even when plain
    bartenders already hold every bartender slot.
    """
    shortfall = open_slots(shift, filled)
    shortfall[SlotKind.LEAD] = max(0, shift["leads_required"] - filled[SlotKind.LEAD])
    return shortfall


def candidate_response(candidate: Candidate, venue_id: UUID) -> CandidateResponse:
    """Serialize a candidate for the manager preview."""
    return CandidateResponse(
        staff_id=candidate.id,
        name=candidate.name,
        is_lead=candidate.is_lead,
        rank=candidate.rank_at(venue_id),
        violations=[v.value for v in candidate.violations],
        waived_by=candidate.waiving_override_ids,
    )


class AutoFillService:
    """Service for automatically staffing shifts."""

    def __init__(self, db: AsyncSession, events: EventPublisher | None = None):
        """Initialize service with database session and event publisher."""
        self.db = db
        self.events = events
        self.roster = RosterService(db)
        self.eligibility = EligibilityService(db)
        self.overrides = OverrideService(db, events)

    async def auto_fill(self, shift_id: UUID, as_of: datetime) -> AutoFillResult:
        """
        Fill a shift's open slots from ranked eligible candidates.

        Categories are filled lead, then bartender, then barback. Every
        assignment is its own transaction; a candidate taken concurrently is
        skipped and never retried. Running again on an unchanged snapshot
        assigns nobody.

        Args:
            shift_id: Shift to staff
            as_of: Evaluation instant

        Returns:
            Partial-fill summary
        """
        shift = await self.roster.get_shift(shift_id)
        existing = await self.roster.list_assignments(shift_id)

        previously = Counter(SlotKind(row["slot"]) for row in existing)
        filled = Counter(previously)
        assigned_ids = {row["staff_id"] for row in existing}

        logger.info(
            "auto_fill_started",
            shift_id=str(shift_id),
            existing=len(existing),
            as_of=as_of.isoformat(),
        )

        created: list[dict[str, Any]] = []
        summaries: dict[SlotKind, SlotSummary] = {}
        unfilled: list[UnfilledSlot] = []

        for slot in FILL_ORDER:
            need = open_slots(shift, filled)[slot]
            gap = slot_shortfall(shift, filled)[slot]
            required = gap + filled[slot]
            newly_assigned = 0

            blocked: list[Candidate] = []
            if gap > 0:
                pool = await self.eligibility.build_pool(
                    shift, slot, as_of, exclude_staff_ids=assigned_ids
                )
                blocked = pool.blocked
                ranked = rank_candidates(pool.eligible, shift["venue_id"], slot)

                for candidate in ranked:
                    if newly_assigned >= need:
                        break
                    row = await self._try_assign(shift, candidate, slot, as_of)
                    if row is None:
                        continue
                    created.append(row)
                    assigned_ids.add(candidate.id)
                    filled[slot] += 1
                    newly_assigned += 1

            remaining = gap - newly_assigned
            summaries[slot] = SlotSummary(
                required=required,
                previously_filled=previously[slot],
                newly_assigned=newly_assigned,
                unfilled=remaining,
            )
            if remaining > 0:
                unfilled.append(
                    UnfilledSlot(
                        slot=slot,
                        count=remaining,
                        reason=NO_ELIGIBLE_CANDIDATES,
                        override_eligible=[c.id for c in blocked if c.id not in assigned_ids],
                    )
                )

        result = AutoFillResult(
            shift_id=shift_id,
            assigned_count=len(created),
            unfilled_count=sum(s.unfilled for s in summaries.values()),
            per_role=summaries,
            unfilled_reasons=unfilled,
            assignments=[AssignmentResponse.model_validate(row) for row in created],
        )
        logger.info(
            "auto_fill_completed",
            shift_id=str(shift_id),
            assigned=result.assigned_count,
            unfilled=result.unfilled_count,
        )
        return result

    async def _try_assign(
        self,
        shift: dict[str, Any],
        candidate: Candidate,
        slot: SlotKind,
        as_of: datetime,
    ) -> dict[str, Any] | None:
        """Create one assignment, returning None when a concurrent writer won."""
        try:
            row = await self.roster.create_assignment(shift["id"], candidate.id, slot, as_of)
        except ConcurrencyConflictException:
            logger.info(
                "assignment_conflict_skipped",
                shift_id=str(shift["id"]),
                staff_id=str(candidate.id),
                slot=slot.value,
            )
            return None

        if candidate.waivers:
            await self.overrides.mark_active(candidate.waiving_override_ids, as_of)

        if self.events:
            self.events.emit(
                EventType.ASSIGNMENT_CREATED,
                as_of,
                assignment_id=row["id"],
                shift_id=shift["id"],
                staff_id=candidate.id,
                slot=slot.value,
            )
        return row

    async def find_candidates(
        self,
        shift_id: UUID,
        slot: SlotKind,
        as_of: datetime,
    ) -> CandidatePoolResponse:
        """
        Preview the ranked pool for a slot without assigning anyone.

        Returns:
            Eligible candidates in fill order and override-eligible ones by name
        """
        shift = await self.roster.get_shift(shift_id)
        existing = await self.roster.list_assignments(shift_id)
        pool = await self.eligibility.build_pool(
            shift, slot, as_of, exclude_staff_ids={row["staff_id"] for row in existing}
        )
        venue_id = shift["venue_id"]
        ranked = rank_candidates(pool.eligible, venue_id, slot)
        blocked = sorted(pool.blocked, key=lambda c: (c.name.casefold(), str(c.id)))
        return CandidatePoolResponse(
            shift_id=shift_id,
            slot=slot,
            eligible=[candidate_response(c, venue_id) for c in ranked],
            blocked=[candidate_response(c, venue_id) for c in blocked],
        )

    async def auto_schedule(
        self,
        as_of: datetime,
        venue_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AutoScheduleResult:
        """
        Auto-fill every under-staffed shift in a venue and date range.

        Shifts are processed in date order. A failure on one shift is recorded
        in its result and the batch moves on.

        Args:
            as_of: Evaluation instant
            venue_id: Restrict to one venue
            start_date: First date, defaults to the venue-local date of as_of
            end_date: Last date, unbounded when omitted

        Returns:
            One outcome per processed shift
        """
        start_date = start_date or local_date(as_of)
        if end_date is not None and end_date < start_date:
            raise ValidationException("end_date must not be before start_date")

        conditions = [shifts.c.date >= start_date]
        if end_date is not None:
            conditions.append(shifts.c.date <= end_date)
        if venue_id is not None:
            conditions.append(shifts.c.venue_id == venue_id)

        result = await self.db.execute(
            select(shifts)
            .where(*conditions)
            .order_by(shifts.c.date, shifts.c.start_time, shifts.c.id)
        )
        candidates = [dict(row) for row in result.mappings().all()]
        fill_state = await self._fill_state([row["id"] for row in candidates])

        outcomes: list[AutoScheduleShiftResult] = []
        for shift in candidates:
            if not any(slot_shortfall(shift, fill_state.get(shift["id"], Counter())).values()):
                continue
            try:
                fill = await self.auto_fill(shift["id"], as_of)
                outcomes.append(
                    AutoScheduleShiftResult(
                        shift_id=shift["id"],
                        shift_date=shift["date"],
                        success=True,
                        result=fill,
                    )
                )
            except (AppException, SQLAlchemyError) as e:
                await self.db.rollback()
                logger.warning(
                    "auto_schedule_shift_failed",
                    shift_id=str(shift["id"]),
                    error=str(e),
                )
                outcomes.append(
                    AutoScheduleShiftResult(
                        shift_id=shift["id"],
                        shift_date=shift["date"],
                        success=False,
                        error=getattr(e, "message", None) or str(e),
                    )
                )

        return AutoScheduleResult(
            processed=len(outcomes),
            assigned=sum(o.result.assigned_count for o in outcomes if o.result),
            results=outcomes,
        )

    async def _fill_state(self, shift_ids: list[UUID]) -> dict[UUID, Counter]:
        """Assignment counts per slot for each shift."""
        if not shift_ids:
            return {}
        result = await self.db.execute(
            select(
                shift_assignments.c.shift_id,
                shift_assignments.c.slot,
                func.count().label("filled"),
            )
            .where(shift_assignments.c.shift_id.in_(shift_ids))
            .group_by(shift_assignments.c.shift_id, shift_assignments.c.slot)
        )
        state: dict[UUID, Counter] = {}
        for row in result.mappings().all():
            state.setdefault(row["shift_id"], Counter())[SlotKind(row["slot"])] = row["filled"]
        return state
