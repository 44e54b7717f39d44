"""Roster service: the single write path for shift assignments."""

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.exceptions import (
    ConcurrencyConflictException,
    NotFoundException,
    StaleTradeException,
)
from barshift.models.shifts import shift_assignments, shifts
from barshift.schemas.shifts import AssignmentResponse, RosterResponse, ShiftResponse
from barshift.schemas.staff import SlotKind

logger = structlog.get_logger(__name__)


class RosterService:
    """
    Service for reading and mutating shift rosters.

    Every assignment insert and every ownership change goes through this
    class, so the (shift, staff) uniqueness constraint is the one arbiter
    between concurrent auto-fill runs and trade approvals.
    """

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_shift(self, shift_id: UUID) -> dict[str, Any]:
        """
        Load a shift row.

        Raises:
            NotFoundException: If the shift does not exist
        """
        result = await self.db.execute(select(shifts).where(shifts.c.id == shift_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException(f"Shift {shift_id} not found")
        return dict(row)

    async def list_assignments(self, shift_id: UUID) -> list[dict[str, Any]]:
        """Assignments of a shift in creation order."""
        result = await self.db.execute(
            select(shift_assignments)
            .where(shift_assignments.c.shift_id == shift_id)
            .order_by(shift_assignments.c.created_at, shift_assignments.c.id)
        )
        return [dict(row) for row in result.mappings().all()]

    async def get_roster(self, shift_id: UUID) -> RosterResponse:
        """Shift together with its current roster."""
        shift = await self.get_shift(shift_id)
        assignments = await self.list_assignments(shift_id)
        return RosterResponse(
            shift=ShiftResponse.model_validate(shift),
            assignments=[AssignmentResponse.model_validate(row) for row in assignments],
        )

    async def find_assignment(self, shift_id: UUID, staff_id: UUID) -> dict[str, Any] | None:
        """Assignment held by a staff member on a shift, if any."""
        result = await self.db.execute(
            select(shift_assignments).where(
                shift_assignments.c.shift_id == shift_id,
                shift_assignments.c.staff_id == staff_id,
            )
        )
        row = result.mappings().first()
        return dict(row) if row else None

    async def create_assignment(
        self,
        shift_id: UUID,
        staff_id: UUID,
        slot: SlotKind,
        as_of: datetime,
    ) -> dict[str, Any]:
        """
        Insert one assignment in its own transaction.

        Args:
            shift_id: Shift being staffed
            staff_id: Staff member taking the slot
            slot: Slot kind the assignment fills
            as_of: Timestamp recorded on the row

        Returns:
            Created assignment row

        Raises:
            ConcurrencyConflictException: If the staff member already holds
                an assignment on this shift
        """
        stmt = (
            insert(shift_assignments)
            .values(
                shift_id=shift_id,
                staff_id=staff_id,
                slot=slot.value,
                created_at=as_of,
                updated_at=as_of,
            )
            .returning(shift_assignments)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.mappings().first()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConcurrencyConflictException(
                f"Staff member {staff_id} is already assigned to shift {shift_id}"
            ) from e

        logger.info(
            "assignment_created",
            shift_id=str(shift_id),
            staff_id=str(staff_id),
            slot=slot.value,
        )
        return dict(row)

    async def reassign(
        self,
        assignment_id: UUID | None,
        shift_id: UUID,
        from_staff_id: UUID,
        to_staff_id: UUID,
        as_of: datetime,
    ) -> dict[str, Any]:
        """
        Move an assignment from one staff member to another, keeping its slot.

        Runs inside the caller's transaction and does not commit. The current
        owner is re-read under a row lock and the update is conditional on it,
        so a concurrent trade or manual edit makes this fail instead of
        silently overwriting.

        Returns:
            Updated assignment row

        Raises:
            StaleTradeException: If the assignment is gone, has changed hands,
                or the receiver is already on the shift
        """
        conditions = [
            shift_assignments.c.shift_id == shift_id,
            shift_assignments.c.staff_id == from_staff_id,
        ]
        if assignment_id is not None:
            conditions.append(shift_assignments.c.id == assignment_id)

        result = await self.db.execute(
            select(shift_assignments).where(*conditions).with_for_update()
        )
        current = result.mappings().first()
        if not current:
            raise StaleTradeException(
                "The traded assignment no longer belongs to the proposer"
            )

        stmt = (
            update(shift_assignments)
            .where(
                shift_assignments.c.id == current["id"],
                shift_assignments.c.staff_id == from_staff_id,
            )
            .values(staff_id=to_staff_id, updated_at=as_of)
            .returning(shift_assignments)
        )
        try:
            result = await self.db.execute(stmt)
        except IntegrityError as e:
            raise StaleTradeException(
                "The receiver already holds an assignment on this shift"
            ) from e

        row = result.mappings().first()
        if not row:
            raise StaleTradeException("The traded assignment changed during approval")
        return dict(row)
