"""Override state machine for waiving soft scheduling constraints."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.approval_policy import required_approvers
from barshift.core.events import EventPublisher
from barshift.core.exceptions import (
    ConcurrencyConflictException,
    ConflictException,
    ForbiddenException,
    InvalidStateTransitionException,
    NotFoundException,
    ValidationException,
)
from barshift.models.overrides import override_approvals, overrides
from barshift.models.staff import staff_members
from barshift.schemas.events import EventType
from barshift.schemas.overrides import (
    ApproverRole,
    OverrideApprovalResponse,
    OverrideCreate,
    OverrideDecision,
    OverrideFilters,
    OverrideHistoryEntry,
    OverrideResponse,
    OverrideStatus,
    ViolationType,
)
from barshift.schemas.staff import StaffRole, is_manager
from barshift.services.roster_service import RosterService

logger = structlog.get_logger(__name__)

OPEN_OVERRIDE_STATUSES = (
    OverrideStatus.PENDING.value,
    OverrideStatus.APPROVED.value,
    OverrideStatus.ACTIVE.value,
)


def history_entry(
    action: str,
    at: datetime,
    actor_id: UUID | None = None,
    note: str | None = None,
) -> dict[str, Any]:
    """JSON-ready history entry."""
    return OverrideHistoryEntry(action=action, actor_id=actor_id, at=at, note=note).model_dump(
        mode="json"
    )


def aggregate_status(
    required: frozenset[ApproverRole],
    decisions: Iterable[tuple[ApproverRole, bool]],
) -> OverrideStatus:
    """
    Aggregate status of an override from its recorded decisions.

    Any decline declines the override. Otherwise it is approved once every
    required capacity has approved.
    """
    approved: set[ApproverRole] = set()
    for role, ok in decisions:
        if not ok:
            return OverrideStatus.DECLINED
        approved.add(role)
    if required <= approved:
        return OverrideStatus.APPROVED
    return OverrideStatus.PENDING


class OverrideService:
    """Service for requesting, deciding and activating overrides."""

    def __init__(self, db: AsyncSession, events: EventPublisher | None = None):
        """Initialize service with database session and event publisher."""
        self.db = db
        self.events = events
        self.roster = RosterService(db)

    async def create_override(
        self,
        data: OverrideCreate,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> OverrideResponse:
        """
        Request an override for a staff member on a shift.

        The requester's own approval is recorded straight away when their
        capacity is one of the required approvers.

        Args:
            data: Override request
            actor: Staff member making the request
            as_of: Request instant

        Returns:
            Created override

        Raises:
            ForbiddenException: If the actor is neither a manager nor the staff member
            ConflictException: If an open override already covers the violation
            ValidationException: If the violation cannot apply to the staff member
        """
        await self.roster.get_shift(data.shift_id)
        staff = await self._get_staff(data.staff_id)

        capacity = self._capacity(actor, data.staff_id)
        if data.violation_type is ViolationType.LEAD_SHORTAGE and (
            staff["role"] != StaffRole.BARTENDER.value or staff["is_lead"]
        ):
            raise ValidationException(
                "Lead shortage overrides apply only to bartenders who are not leads"
            )

        result = await self.db.execute(
            select(overrides.c.id).where(
                overrides.c.shift_id == data.shift_id,
                overrides.c.staff_id == data.staff_id,
                overrides.c.violation_type == data.violation_type.value,
                overrides.c.status.in_(OPEN_OVERRIDE_STATUSES),
            )
        )
        if result.first():
            raise ConflictException(
                f"An open {data.violation_type.value} override already exists for this shift"
            )

        required = required_approvers(data.violation_type)
        history = [history_entry("requested", as_of, actor["id"], data.reason)]
        status = OverrideStatus.PENDING
        if capacity in required:
            status = aggregate_status(required, [(capacity, True)])
            history.append(history_entry("approved", as_of, actor["id"], capacity.value))
            if status is OverrideStatus.APPROVED:
                history.append(history_entry(OverrideStatus.APPROVED.value.lower(), as_of))

        stmt = (
            insert(overrides)
            .values(
                shift_id=data.shift_id,
                staff_id=data.staff_id,
                violation_type=data.violation_type.value,
                reason=data.reason,
                status=status.value,
                requested_by=actor["id"],
                history=history,
                created_at=as_of,
                updated_at=as_of,
            )
            .returning(overrides)
        )
        result = await self.db.execute(stmt)
        row = dict(result.mappings().first())

        if capacity in required:
            await self.db.execute(
                insert(override_approvals).values(
                    override_id=row["id"],
                    approver_id=actor["id"],
                    approver_role=capacity.value,
                    approved=True,
                    created_at=as_of,
                )
            )
        await self.db.commit()

        logger.info(
            "override_created",
            override_id=str(row["id"]),
            violation_type=data.violation_type.value,
            status=status.value,
        )
        self._emit(EventType.OVERRIDE_REQUESTED, row, as_of)
        if status is OverrideStatus.APPROVED:
            self._emit(EventType.OVERRIDE_APPROVED, row, as_of)
        return await self._response(row)

    async def decide(
        self,
        override_id: UUID,
        decision: OverrideDecision,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> OverrideResponse:
        """
        Record an approver's decision on a pending override.

        Args:
            override_id: Override being decided
            decision: Approve or decline, with an optional comment
            actor: Approver
            as_of: Decision instant

        Returns:
            Override with its aggregate status

        Raises:
            InvalidStateTransitionException: If the override is no longer pending
            ForbiddenException: If the actor's capacity is not a required approver
            ValidationException: If that capacity has already responded
        """
        row = await self._get_row(override_id)
        if row["status"] != OverrideStatus.PENDING.value:
            raise InvalidStateTransitionException(
                f"Override is {row['status']}; decisions are only accepted while PENDING"
            )

        violation = ViolationType(row["violation_type"])
        required = required_approvers(violation)
        capacity = self._capacity(actor, row["staff_id"])
        if capacity not in required:
            raise ForbiddenException(
                f"{capacity.value} approval is not required for {violation.value} overrides"
            )

        decisions = await self._decisions(override_id)
        if any(role is capacity for role, _ in decisions):
            raise ValidationException(f"A {capacity.value} decision is already recorded")

        decisions.append((capacity, decision.approved))
        status = aggregate_status(required, decisions)

        history = list(row["history"])
        action = "approved" if decision.approved else "declined"
        history.append(history_entry(action, as_of, actor["id"], decision.comment))
        if status is not OverrideStatus.PENDING and decision.approved:
            history.append(history_entry(status.value.lower(), as_of))

        try:
            await self.db.execute(
                insert(override_approvals).values(
                    override_id=override_id,
                    approver_id=actor["id"],
                    approver_role=capacity.value,
                    approved=decision.approved,
                    comment=decision.comment,
                    created_at=as_of,
                )
            )
            result = await self.db.execute(
                update(overrides)
                .where(
                    overrides.c.id == override_id,
                    overrides.c.status == OverrideStatus.PENDING.value,
                )
                .values(status=status.value, history=history, updated_at=as_of)
                .returning(overrides)
            )
            updated = result.mappings().first()
            if not updated:
                raise ConcurrencyConflictException("Override was decided concurrently")
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationException("This approver has already responded") from e
        except ConcurrencyConflictException:
            await self.db.rollback()
            raise
        await self.db.commit()

        row = dict(updated)
        logger.info(
            "override_decision_recorded",
            override_id=str(override_id),
            capacity=capacity.value,
            approved=decision.approved,
            status=status.value,
        )
        if status is OverrideStatus.APPROVED:
            self._emit(EventType.OVERRIDE_APPROVED, row, as_of)
        elif status is OverrideStatus.DECLINED:
            self._emit(EventType.OVERRIDE_DECLINED, row, as_of)
        return await self._response(row)

    async def activate(
        self,
        override_id: UUID,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> OverrideResponse:
        """
        Mark an approved override active once its assignment exists.

        Used by the manual assignment path; auto-fill activates overrides
        itself when it assigns the waived candidate.

        Raises:
            ForbiddenException: If the actor is not a manager
            InvalidStateTransitionException: If the override is not APPROVED
            ValidationException: If the staff member is not on the shift
        """
        if not is_manager(actor):
            raise ForbiddenException("Only managers can activate overrides")

        row = await self._get_row(override_id)
        if row["status"] != OverrideStatus.APPROVED.value:
            raise InvalidStateTransitionException(
                f"Override is {row['status']}; only APPROVED overrides can be activated"
            )
        if not await self.roster.find_assignment(row["shift_id"], row["staff_id"]):
            raise ValidationException("The staff member has no assignment on this shift yet")

        activated = await self.mark_active([override_id], as_of, actor_id=actor["id"])
        if not activated:
            raise ConcurrencyConflictException("Override changed state during activation")
        return await self._response(activated[0])

    async def mark_active(
        self,
        override_ids: Iterable[UUID],
        as_of: datetime,
        actor_id: UUID | None = None,
    ) -> list[dict[str, Any]]:
        """
        Move APPROVED overrides to ACTIVE and commit.

        Overrides already ACTIVE or otherwise not APPROVED are left untouched.

        Returns:
            Rows that transitioned
        """
        ids = list(override_ids)
        if not ids:
            return []

        result = await self.db.execute(
            select(overrides).where(
                overrides.c.id.in_(ids),
                overrides.c.status == OverrideStatus.APPROVED.value,
            )
        )
        activated = []
        for row in result.mappings().all():
            history = [*row["history"], history_entry("activated", as_of, actor_id)]
            updated = await self.db.execute(
                update(overrides)
                .where(
                    overrides.c.id == row["id"],
                    overrides.c.status == OverrideStatus.APPROVED.value,
                )
                .values(status=OverrideStatus.ACTIVE.value, history=history, updated_at=as_of)
                .returning(overrides)
            )
            new_row = updated.mappings().first()
            if new_row:
                activated.append(dict(new_row))
        await self.db.commit()

        for row in activated:
            logger.info("override_activated", override_id=str(row["id"]))
            self._emit(EventType.OVERRIDE_ACTIVATED, row, as_of)
        return activated

    async def get_override(self, override_id: UUID, actor: dict[str, Any]) -> OverrideResponse:
        """
        Get an override by ID.

        Raises:
            NotFoundException: If missing or not visible to the actor
        """
        row = await self._get_row(override_id)
        if not is_manager(actor) and actor["id"] not in (row["staff_id"], row["requested_by"]):
            raise NotFoundException("Override not found")
        return await self._response(row)

    async def list_overrides(
        self,
        filters: OverrideFilters,
        actor: dict[str, Any],
    ) -> list[OverrideResponse]:
        """List overrides; staff members only see their own."""
        query = select(overrides)
        if filters.shift_id:
            query = query.where(overrides.c.shift_id == filters.shift_id)
        if filters.staff_id:
            query = query.where(overrides.c.staff_id == filters.staff_id)
        if filters.status:
            query = query.where(overrides.c.status == filters.status.value)
        if not is_manager(actor):
            query = query.where(overrides.c.staff_id == actor["id"])

        result = await self.db.execute(query.order_by(overrides.c.created_at, overrides.c.id))
        return [await self._response(dict(row)) for row in result.mappings().all()]

    def _capacity(self, actor: dict[str, Any], staff_id: UUID) -> ApproverRole:
        """Capacity the actor acts in for an override on staff_id."""
        if actor["id"] == staff_id:
            return ApproverRole.STAFF
        if is_manager(actor):
            return ApproverRole.MANAGER
        raise ForbiddenException("Only managers or the affected staff member can act on overrides")

    async def _get_staff(self, staff_id: UUID) -> dict[str, Any]:
        result = await self.db.execute(select(staff_members).where(staff_members.c.id == staff_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException(f"Staff member {staff_id} not found")
        return dict(row)

    async def _get_row(self, override_id: UUID) -> dict[str, Any]:
        result = await self.db.execute(select(overrides).where(overrides.c.id == override_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Override not found")
        return dict(row)

    async def _approval_rows(self, override_id: UUID) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(override_approvals)
            .where(override_approvals.c.override_id == override_id)
            .order_by(override_approvals.c.created_at, override_approvals.c.id)
        )
        return [dict(row) for row in result.mappings().all()]

    async def _decisions(self, override_id: UUID) -> list[tuple[ApproverRole, bool]]:
        return [
            (ApproverRole(row["approver_role"]), row["approved"])
            for row in await self._approval_rows(override_id)
        ]

    async def _response(self, row: dict[str, Any]) -> OverrideResponse:
        approvals = await self._approval_rows(row["id"])
        required = required_approvers(ViolationType(row["violation_type"]))
        return OverrideResponse.model_validate(
            {
                **row,
                "approvals": [OverrideApprovalResponse.model_validate(a) for a in approvals],
                "required_approvers": sorted(required, key=lambda r: r.value),
            }
        )

    def _emit(self, event_type: EventType, row: dict[str, Any], as_of: datetime) -> None:
        if not self.events:
            return
        self.events.emit(
            event_type,
            as_of,
            override_id=row["id"],
            shift_id=row["shift_id"],
            staff_id=row["staff_id"],
            violation_type=row["violation_type"],
            status=row["status"],
        )
