"""Trade state machine for swapping a shift assignment between staff."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.events import EventPublisher
from barshift.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateTransitionException,
    NotFoundException,
    StaleTradeException,
    ValidationException,
)
from barshift.core.timeframes import local_instant, shift_window
from barshift.models.trades import shift_trades
from barshift.models.venues import venues
from barshift.schemas.events import EventType
from barshift.schemas.staff import SlotKind, is_manager
from barshift.schemas.trades import (
    OPEN_TRADE_STATUSES,
    TradeCreate,
    TradeDecline,
    TradeFilters,
    TradeResponse,
    TradeStatus,
)
from barshift.services.eligibility_service import EligibilityService
from barshift.services.override_service import OverrideService
from barshift.services.roster_service import RosterService

logger = structlog.get_logger(__name__)


class TradeService:
    """Service for proposing, negotiating and approving shift trades."""

    def __init__(self, db: AsyncSession, events: EventPublisher | None = None):
        """Initialize service with database session and event publisher."""
        self.db = db
        self.events = events
        self.roster = RosterService(db)
        self.eligibility = EligibilityService(db)
        self.overrides = OverrideService(db, events)

    async def propose_trade(
        self,
        data: TradeCreate,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> TradeResponse:
        """
        Offer the actor's assignment on a shift to another staff member.

        Args:
            data: Trade proposal
            actor: Proposing staff member
            as_of: Request instant

        Returns:
            Created trade in PROPOSED state

        Raises:
            ValidationException: If the proposer holds no assignment, the
                receiver is ineligible, or the trade deadline has passed
            ConflictException: If the proposer already has an open trade for the shift
        """
        shift = await self.roster.get_shift(data.shift_id)
        assignment = await self.roster.find_assignment(data.shift_id, actor["id"])
        if not assignment:
            raise ValidationException("You do not hold an assignment on this shift")
        if data.receiver_id == actor["id"]:
            raise ValidationException("You cannot trade a shift with yourself")
        if await self.roster.find_assignment(data.shift_id, data.receiver_id):
            raise ValidationException("The receiver is already assigned to this shift")

        deadline_hours = await self._trade_deadline_hours(shift["venue_id"])
        starts_at = local_instant(
            shift_window(shift["date"], shift["start_time"], shift["end_time"])[0]
        )
        if starts_at - as_of < timedelta(hours=deadline_hours):
            raise ValidationException(
                f"Trades close {deadline_hours} hours before the shift starts"
            )

        result = await self.db.execute(
            select(shift_trades.c.id).where(
                shift_trades.c.shift_id == data.shift_id,
                shift_trades.c.proposer_id == actor["id"],
                shift_trades.c.status.in_(OPEN_TRADE_STATUSES),
            )
        )
        if result.first():
            raise ConflictException("You already have an open trade for this shift")

        slot = SlotKind(assignment["slot"])
        _, reason = await self.eligibility.evaluate_staff(shift, slot, data.receiver_id, as_of)
        if reason is not None:
            raise ValidationException(f"Receiver is not eligible for this shift: {reason}")

        stmt = (
            insert(shift_trades)
            .values(
                shift_id=data.shift_id,
                assignment_id=assignment["id"],
                proposer_id=actor["id"],
                receiver_id=data.receiver_id,
                status=TradeStatus.PROPOSED.value,
                reason=data.reason,
                created_at=as_of,
                updated_at=as_of,
            )
            .returning(shift_trades)
        )
        result = await self.db.execute(stmt)
        row = dict(result.mappings().first())
        await self.db.commit()

        logger.info(
            "trade_proposed",
            trade_id=str(row["id"]),
            shift_id=str(data.shift_id),
            slot=slot.value,
        )
        self._emit(EventType.TRADE_PROPOSED, row, as_of)
        return TradeResponse.model_validate(row)

    async def accept_trade(
        self,
        trade_id: UUID,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> TradeResponse:
        """Receiver accepts a proposed trade. The assignment does not move yet."""
        row = await self._get_row(trade_id)
        if actor["id"] != row["receiver_id"]:
            raise ForbiddenException("Only the receiver can accept this trade")
        self._require_status(row, TradeStatus.PROPOSED)

        row = await self._transition(row, TradeStatus.ACCEPTED, as_of)
        await self.db.commit()
        self._emit(EventType.TRADE_ACCEPTED, row, as_of)
        return TradeResponse.model_validate(row)

    async def decline_trade(
        self,
        trade_id: UUID,
        data: TradeDecline,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> TradeResponse:
        """
        Decline a trade.

        The receiver may decline while PROPOSED; a manager may decline
        while ACCEPTED.
        """
        row = await self._get_row(trade_id)
        status = TradeStatus(row["status"])

        if status is TradeStatus.PROPOSED:
            if actor["id"] != row["receiver_id"]:
                raise ForbiddenException("Only the receiver can decline a proposed trade")
        elif status is TradeStatus.ACCEPTED:
            if not is_manager(actor):
                raise ForbiddenException("Only a manager can decline an accepted trade")
        else:
            raise InvalidStateTransitionException(f"Trade is already {status.value}")

        row = await self._transition(
            row,
            TradeStatus.DECLINED,
            as_of,
            declined_by=actor["id"],
            declined_reason=data.reason,
        )
        await self.db.commit()
        self._emit(EventType.TRADE_DECLINED, row, as_of)
        return TradeResponse.model_validate(row)

    async def cancel_trade(
        self,
        trade_id: UUID,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> TradeResponse:
        """Proposer withdraws a trade that is not yet settled."""
        row = await self._get_row(trade_id)
        if actor["id"] != row["proposer_id"]:
            raise ForbiddenException("Only the proposer can cancel this trade")
        if row["status"] not in OPEN_TRADE_STATUSES:
            raise InvalidStateTransitionException(f"Trade is already {row['status']}")

        row = await self._transition(row, TradeStatus.CANCELLED, as_of)
        await self.db.commit()
        self._emit(EventType.TRADE_CANCELLED, row, as_of)
        return TradeResponse.model_validate(row)

    async def approve_trade(
        self,
        trade_id: UUID,
        actor: dict[str, Any],
        as_of: datetime,
    ) -> TradeResponse:
        """
        Manager approval: swap the assignment and settle the trade atomically.

        The reassignment and the status change share one transaction. If the
        proposer no longer owns the assignment, nothing changes and the trade
        stays ACCEPTED for manual reconciliation.

        Raises:
            ForbiddenException: If the actor is not a manager
            InvalidStateTransitionException: If the trade is not ACCEPTED
            StaleTradeException: If the assignment moved or disappeared
        """
        if not is_manager(actor):
            raise ForbiddenException("Only managers can approve trades")

        row = await self._get_row(trade_id)
        self._require_status(row, TradeStatus.ACCEPTED)

        # Overrides the receiver relies on for this slot become ACTIVE with the swap
        shift = await self.roster.get_shift(row["shift_id"])
        assignment = await self.roster.find_assignment(row["shift_id"], row["proposer_id"])
        waiving_ids: list[UUID] = []
        if assignment and assignment["id"] == row["assignment_id"]:
            receiver, _ = await self.eligibility.evaluate_staff(
                shift, SlotKind(assignment["slot"]), row["receiver_id"], as_of
            )
            if receiver is not None:
                waiving_ids = receiver.waiving_override_ids

        try:
            await self.roster.reassign(
                row["assignment_id"],
                row["shift_id"],
                row["proposer_id"],
                row["receiver_id"],
                as_of,
            )
            row = await self._transition(
                row,
                TradeStatus.APPROVED,
                as_of,
                approved_by=actor["id"],
                approved_at=as_of,
            )
        except StaleTradeException:
            await self.db.rollback()
            logger.warning("trade_stale", trade_id=str(trade_id))
            raise
        except InvalidStateTransitionException:
            await self.db.rollback()
            raise
        await self.db.commit()

        logger.info("trade_approved", trade_id=str(trade_id), approved_by=str(actor["id"]))
        self._emit(EventType.TRADE_APPROVED, row, as_of)
        await self.overrides.mark_active(waiving_ids, as_of, actor_id=actor["id"])
        return TradeResponse.model_validate(row)

    async def get_trade(self, trade_id: UUID, actor: dict[str, Any]) -> TradeResponse:
        """
        Get a trade by ID.

        Raises:
            NotFoundException: If missing or not visible to the actor
        """
        row = await self._get_row(trade_id)
        if not is_manager(actor) and actor["id"] not in (row["proposer_id"], row["receiver_id"]):
            raise NotFoundException("Trade not found")
        return TradeResponse.model_validate(row)

    async def list_trades(
        self,
        filters: TradeFilters,
        actor: dict[str, Any],
    ) -> list[TradeResponse]:
        """List trades; staff members only see trades they are party to."""
        query = select(shift_trades)
        if filters.shift_id:
            query = query.where(shift_trades.c.shift_id == filters.shift_id)
        if filters.staff_id:
            query = query.where(
                or_(
                    shift_trades.c.proposer_id == filters.staff_id,
                    shift_trades.c.receiver_id == filters.staff_id,
                )
            )
        if filters.status:
            query = query.where(shift_trades.c.status == filters.status.value)
        if not is_manager(actor):
            query = query.where(
                or_(
                    shift_trades.c.proposer_id == actor["id"],
                    shift_trades.c.receiver_id == actor["id"],
                )
            )

        result = await self.db.execute(
            query.order_by(shift_trades.c.created_at, shift_trades.c.id)
        )
        return [TradeResponse.model_validate(dict(row)) for row in result.mappings().all()]

    async def _get_row(self, trade_id: UUID) -> dict[str, Any]:
        result = await self.db.execute(select(shift_trades).where(shift_trades.c.id == trade_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Trade not found")
        return dict(row)

    async def _trade_deadline_hours(self, venue_id: UUID) -> int:
        result = await self.db.execute(
            select(venues.c.trade_deadline_hours).where(venues.c.id == venue_id)
        )
        return result.scalar_one()

    def _require_status(self, row: dict[str, Any], expected: TradeStatus) -> None:
        if row["status"] != expected.value:
            raise InvalidStateTransitionException(
                f"Trade is {row['status']}; expected {expected.value}"
            )

    async def _transition(
        self,
        row: dict[str, Any],
        new_status: TradeStatus,
        as_of: datetime,
        **values: Any,
    ) -> dict[str, Any]:
        """Conditional status update from the row's current status; does not commit."""
        result = await self.db.execute(
            update(shift_trades)
            .where(
                shift_trades.c.id == row["id"],
                shift_trades.c.status == row["status"],
            )
            .values(status=new_status.value, updated_at=as_of, **values)
            .returning(shift_trades)
        )
        updated = result.mappings().first()
        if not updated:
            raise InvalidStateTransitionException("Trade changed state concurrently")
        return dict(updated)

    def _emit(self, event_type: EventType, row: dict[str, Any], as_of: datetime) -> None:
        if not self.events:
            return
        self.events.emit(
            event_type,
            as_of,
            trade_id=row["id"],
            shift_id=row["shift_id"],
            proposer_id=row["proposer_id"],
            receiver_id=row["receiver_id"],
            status=row["status"],
        )
