"""Row factories and shared constants for the test suite."""

import calendar
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.events import EventPublisher
from barshift.models import (
    availabilities,
    external_blocks,
    overrides,
    shift_assignments,
    shifts,
    staff_members,
    venues,
)
from barshift.schemas.events import DomainEvent, EventType

# Fixed evaluation instant; shifts in the tests fall later in November 2026
AS_OF = datetime(2026, 11, 1, 12, 0, tzinfo=UTC)
SHIFT_DATE = date(2026, 11, 20)
MONTH = "2026-11"


class RecordingPublisher(EventPublisher):
    """Event publisher that keeps events in memory instead of using Redis."""

    def __init__(self) -> None:
        super().__init__(redis_client=None, channel="test:events")
        self.events: list[DomainEvent] = []

    def publish(self, event: DomainEvent) -> bool:
        self.events.append(event)
        return True

    def of_type(self, event_type: EventType) -> list[DomainEvent]:
        return [e for e in self.events if e.event_type is event_type]


def full_month(month: str = MONTH, available: bool = True) -> dict[str, Any]:
    """Availability grid covering every day of a month."""
    year, month_number = (int(part) for part in month.split("-"))
    days = calendar.monthrange(year, month_number)[1]
    return {
        date(year, month_number, day).isoformat(): {"available": available, "windows": None}
        for day in range(1, days + 1)
    }


class Factory:
    """Inserts domain rows for tests."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._counter = 0

    async def _insert(self, table, **values: Any) -> dict[str, Any]:
        result = await self.db.execute(insert(table).values(**values).returning(table))
        row = dict(result.mappings().first())
        await self.db.commit()
        return row

    async def venue(self, **overrides_: Any) -> dict[str, Any]:
        values = {
            "name": "The Anchor",
            "priority": 1,
            "availability_deadline_day": 10,
            "tip_pool_enabled": True,
            "trade_deadline_hours": 24,
        }
        values.update(overrides_)
        return await self._insert(venues, **values)

    async def staff(
        self,
        name: str,
        role: str = "BARTENDER",
        venues_: list[dict[str, Any]] | None = None,
        rank: int | None = None,
        **overrides_: Any,
    ) -> dict[str, Any]:
        self._counter += 1
        venue_ids = [str(v["id"]) for v in venues_ or []]
        values = {
            "email": f"{name.lower().replace(' ', '.')}.{self._counter}@example.com",
            "name": name,
            "role": role,
            "status": "ACTIVE",
            "is_lead": False,
            "has_day_job": False,
            "day_job_cutoff": None,
            "preferred_venues_order": venue_ids,
            "venue_rankings": {vid: rank for vid in venue_ids} if rank is not None else {},
        }
        values.update(overrides_)
        return await self._insert(staff_members, **values)

    async def manager(self, name: str = "Morgan", role: str = "MANAGER") -> dict[str, Any]:
        return await self.staff(name, role=role)

    async def shift(
        self,
        venue: dict[str, Any],
        on: date = SHIFT_DATE,
        start: time = time(18, 0),
        end: time = time(23, 0),
        bartenders: int = 2,
        barbacks: int = 1,
        leads: int = 1,
    ) -> dict[str, Any]:
        return await self._insert(
            shifts,
            venue_id=venue["id"],
            date=on,
            start_time=start,
            end_time=end,
            bartenders_required=bartenders,
            barbacks_required=barbacks,
            leads_required=leads,
        )

    async def availability(
        self,
        staff: dict[str, Any],
        month: str = MONTH,
        data: dict[str, Any] | None = None,
        submitted: bool = True,
    ) -> dict[str, Any]:
        submitted_at = AS_OF - timedelta(days=20) if submitted else None
        return await self._insert(
            availabilities,
            staff_id=staff["id"],
            month=month,
            data=data if data is not None else full_month(month),
            submitted_at=submitted_at,
            locked_at=submitted_at,
            is_locked=submitted,
        )

    async def available_staff(self, name: str, **kwargs: Any) -> dict[str, Any]:
        """Staff member with a submitted, fully available month."""
        staff = await self.staff(name, **kwargs)
        await self.availability(staff)
        return staff

    async def assignment(
        self,
        shift: dict[str, Any],
        staff: dict[str, Any],
        slot: str = "BARTENDER",
    ) -> dict[str, Any]:
        return await self._insert(
            shift_assignments,
            shift_id=shift["id"],
            staff_id=staff["id"],
            slot=slot,
        )

    async def block(
        self,
        staff: dict[str, Any],
        starts_at: datetime,
        ends_at: datetime,
        source: str = "google",
    ) -> dict[str, Any]:
        return await self._insert(
            external_blocks,
            staff_id=staff["id"],
            starts_at=starts_at,
            ends_at=ends_at,
            source=source,
        )

    async def override(
        self,
        shift: dict[str, Any],
        staff: dict[str, Any],
        violation_type: str,
        status: str = "APPROVED",
        requested_by: UUID | None = None,
    ) -> dict[str, Any]:
        return await self._insert(
            overrides,
            shift_id=shift["id"],
            staff_id=staff["id"],
            violation_type=violation_type,
            reason="Seeded override for testing",
            status=status,
            requested_by=requested_by or staff["id"],
            history=[],
        )


