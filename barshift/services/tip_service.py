"""Tip baseline calculator."""

from datetime import datetime
from decimal import ROUND_DOWN, Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.config import settings
from barshift.core.events import EventPublisher
from barshift.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    InvalidStateTransitionException,
    ValidationException,
)
from barshift.models.shifts import shift_assignments, shifts
from barshift.models.venues import venues
from barshift.schemas.events import EventType
from barshift.schemas.shifts import AssignmentResponse
from barshift.schemas.staff import is_manager
from barshift.schemas.tips import TipBaselineResponse
from barshift.services.roster_service import RosterService

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def split_evenly(total: Decimal, headcount: int) -> tuple[Decimal, Decimal]:
    """
    Even split of a pool, rounded down to the cent.

    Returns:
        Per-person amount and the remainder left unallocated
    """
    if headcount <= 0:
        raise ValidationException("Shift has no assignments to split tips across")
    per_person = (total / headcount).quantize(CENT, rounding=ROUND_DOWN)
    return per_person, total - per_person * headcount


class TipService:
    """Service for the baseline tip split of a shift's roster."""

    def __init__(self, db: AsyncSession, events: EventPublisher | None = None):
        """Initialize service with database session and event publisher."""
        self.db = db
        self.events = events
        self.roster = RosterService(db)

    async def calculate_baseline(
        self,
        shift_id: UUID,
        total: Decimal,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> TipBaselineResponse:
        """
        Enter a pool total and write the draft per-person split.

        Args:
            shift_id: Shift whose roster shares the pool
            total: Pool amount
            actor: Manager entering the pool
            as_of: Entry instant

        Returns:
            Baseline split over the current roster

        Raises:
            InvalidStateTransitionException: If tips are already published;
                republish to recalculate
        """
        shift = await self._load_for_tips(shift_id, actor)
        if shift["tips_published"]:
            raise InvalidStateTransitionException(
                "Tips are already published; republish to recalculate"
            )

        response = await self._apply_split(shift, total, actor, as_of)
        await self.db.commit()
        logger.info(
            "tips_baseline_calculated",
            shift_id=str(shift_id),
            total=str(total),
            per_person=str(response.per_person),
        )
        return response

    async def publish(
        self,
        shift_id: UUID,
        actor: dict[str, Any],
        as_of: datetime,
        total: Decimal | None = None,
    ) -> TipBaselineResponse:
        """
        Publish (or republish) the split over the roster as it stands now.

        Publication is one-way. Assignments added afterwards keep no amount
        until the next republish.

        Raises:
            ValidationException: If no pool total was given or entered before
        """
        shift = await self._load_for_tips(shift_id, actor)
        total = total if total is not None else shift["tip_pool_total"]
        if total is None:
            raise ValidationException("Enter a tip pool total before publishing")

        await self._apply_split(shift, total, actor, as_of)
        await self.db.execute(
            update(shifts)
            .where(shifts.c.id == shift_id)
            .values(
                tips_published=True,
                tips_published_at=as_of,
                tips_published_by=actor["id"],
                updated_at=as_of,
            )
        )
        await self.db.commit()

        shift = await self.roster.get_shift(shift_id)
        response = await self._response(shift)
        logger.info(
            "tips_published",
            shift_id=str(shift_id),
            total=str(response.total),
            headcount=len(response.assignments),
        )
        if self.events:
            self.events.emit(
                EventType.TIPS_PUBLISHED,
                as_of,
                shift_id=shift_id,
                total=str(response.total),
                per_person=str(response.per_person),
                currency=response.currency,
                staff_ids=[a.staff_id for a in response.assignments],
            )
        return response

    async def _load_for_tips(self, shift_id: UUID, actor: dict[str, Any]) -> dict[str, Any]:
        if not is_manager(actor):
            raise ForbiddenException("Only managers can manage tips")
        shift = await self.roster.get_shift(shift_id)
        result = await self.db.execute(
            select(venues.c.tip_pool_enabled).where(venues.c.id == shift["venue_id"])
        )
        if not result.scalar_one():
            raise BadRequestException("Tip pooling is not enabled for this venue")
        return shift

    async def _apply_split(
        self,
        shift: dict[str, Any],
        total: Decimal,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> TipBaselineResponse:
        """Write the pool total and per-person amounts; does not commit."""
        assignments = await self.roster.list_assignments(shift["id"])
        per_person, _ = split_evenly(total, len({row["staff_id"] for row in assignments}))

        await self.db.execute(
            update(shifts)
            .where(shifts.c.id == shift["id"])
            .values(tip_pool_total=total, updated_at=as_of)
        )
        await self.db.execute(
            update(shift_assignments)
            .where(shift_assignments.c.shift_id == shift["id"])
            .values(
                tip_amount=per_person,
                tip_currency=settings.tip_currency,
                tip_entered_by=actor["id"],
                tip_entered_at=as_of,
                updated_at=as_of,
            )
        )
        return await self._response({**shift, "tip_pool_total": total})

    async def _response(self, shift: dict[str, Any]) -> TipBaselineResponse:
        assignments = await self.roster.list_assignments(shift["id"])
        total = shift["tip_pool_total"]
        per_person, unallocated = split_evenly(total, len(assignments))
        return TipBaselineResponse(
            shift_id=shift["id"],
            total=total,
            per_person=per_person,
            unallocated=unallocated,
            currency=settings.tip_currency,
            tips_published=shift["tips_published"],
            tips_published_at=shift["tips_published_at"],
            tips_published_by=shift["tips_published_by"],
            assignments=[AssignmentResponse.model_validate(row) for row in assignments],
        )
