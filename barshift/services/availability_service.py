"""Availability service for monthly availability grids."""

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.exceptions import (
    ConcurrencyConflictException,
    InvalidStateTransitionException,
    NotFoundException,
    ValidationException,
)
from barshift.core.timeframes import month_key
from barshift.models.availability import availabilities
from barshift.models.venues import venues
from barshift.schemas.availability import AvailabilityResponse, AvailabilitySubmit
from barshift.services.eligibility_service import availability_is_locked

logger = structlog.get_logger(__name__)

DEFAULT_DEADLINE_DAY = 10


class AvailabilityService:
    """Service for submitting and reading staff availability."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_availability(self, staff_id: UUID, month: str) -> AvailabilityResponse:
        """
        Get a staff member's availability for a month.

        Raises:
            NotFoundException: If nothing was recorded for that month
        """
        row = await self._get_row(staff_id, month)
        if not row:
            raise NotFoundException(f"No availability recorded for {month}")
        return AvailabilityResponse.model_validate(row)

    async def submit_availability(
        self,
        staff: dict[str, Any],
        month: str,
        payload: AvailabilitySubmit,
        as_of: datetime,
    ) -> AvailabilityResponse:
        """
        Save a month of availability, optionally locking it.

        Args:
            staff: Staff member the grid belongs to
            month: YYYY-MM key
            payload: Grid and whether to submit it
            as_of: Submission instant

        Returns:
            Stored availability

        Raises:
            ValidationException: If the grid holds dates outside the month
            InvalidStateTransitionException: If the month is already locked
        """
        stray = sorted(day for day in payload.data.root if month_key(day) != month)
        if stray:
            raise ValidationException(
                f"Availability for {month} contains dates outside the month: "
                + ", ".join(day.isoformat() for day in stray)
            )

        existing = await self._get_row(staff["id"], month)
        if existing:
            deadline_day = await self._deadline_day(staff)
            if availability_is_locked(existing, deadline_day, as_of):
                raise InvalidStateTransitionException(
                    f"Availability for {month} is locked and can no longer be edited"
                )

        values: dict[str, Any] = {
            "data": payload.data.model_dump(mode="json"),
            "updated_at": as_of,
        }
        if payload.submit:
            values.update(submitted_at=as_of, locked_at=as_of, is_locked=True)

        try:
            if existing:
                stmt = (
                    update(availabilities)
                    .where(
                        availabilities.c.id == existing["id"],
                        availabilities.c.is_locked.is_(False),
                    )
                    .values(**values)
                    .returning(availabilities)
                )
            else:
                stmt = (
                    insert(availabilities)
                    .values(staff_id=staff["id"], month=month, created_at=as_of, **values)
                    .returning(availabilities)
                )
            result = await self.db.execute(stmt)
            row = result.mappings().first()
            if not row:
                raise ConcurrencyConflictException("Availability was locked concurrently")
            row = dict(row)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConcurrencyConflictException(
                f"Availability for {month} was saved concurrently"
            ) from e

        logger.info(
            "availability_saved",
            staff_id=str(staff["id"]),
            month=month,
            submitted=payload.submit,
            days=len(payload.data.root),
        )
        return AvailabilityResponse.model_validate(row)

    async def _get_row(self, staff_id: UUID, month: str) -> dict[str, Any] | None:
        result = await self.db.execute(
            select(availabilities).where(
                availabilities.c.staff_id == staff_id,
                availabilities.c.month == month,
            )
        )
        row = result.mappings().first()
        return dict(row) if row else None

    async def _deadline_day(self, staff: dict[str, Any]) -> int:
        """Earliest availability deadline among the staff member's venues."""
        venue_ids = [UUID(str(v)) for v in staff.get("preferred_venues_order") or []]
        if not venue_ids:
            return DEFAULT_DEADLINE_DAY
        result = await self.db.execute(
            select(func.min(venues.c.availability_deadline_day)).where(venues.c.id.in_(venue_ids))
        )
        return result.scalar_one_or_none() or DEFAULT_DEADLINE_DAY
