"""Shift roster and auto-fill schemas."""

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from barshift.schemas.staff import SlotKind, StaffRole


class AssignmentResponse(BaseModel):
    """Schema for a shift assignment."""

    id: UUID
    shift_id: UUID
    staff_id: UUID
    slot: SlotKind
    tip_amount: Decimal | None = None
    tip_currency: str | None = None
    tip_entered_by: UUID | None = None
    tip_entered_at: datetime | None = None
    created_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def role(self) -> StaffRole:
        """Effective role derived from the slot."""
        return self.slot.role

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_lead(self) -> bool:
        """Lead flag derived from the slot."""
        return self.slot.is_lead

    model_config = {"from_attributes": True}


class ShiftResponse(BaseModel):
    """Schema for a shift."""

    id: UUID
    venue_id: UUID
    date: date
    start_time: time
    end_time: time
    bartenders_required: int
    barbacks_required: int
    leads_required: int
    tip_pool_total: Decimal | None = None
    tips_published: bool
    tips_published_at: datetime | None = None
    tips_published_by: UUID | None = None

    model_config = {"from_attributes": True}


class RosterResponse(BaseModel):
    """Schema for a shift together with its roster."""

    shift: ShiftResponse
    assignments: list[AssignmentResponse]


class SlotSummary(BaseModel):
    """Fill state of one slot category after auto-fill."""

    required: int
    previously_filled: int
    newly_assigned: int
    unfilled: int


class UnfilledSlot(BaseModel):
    """A slot category left short, with the reason."""

    slot: SlotKind
    count: int
    reason: str
    override_eligible: list[UUID] = Field(
        default_factory=list,
        description="Candidates blocked only by waivable constraints",
    )


class AutoFillResult(BaseModel):
    """Partial-fill summary returned by auto-fill."""

    shift_id: UUID
    assigned_count: int
    unfilled_count: int
    per_role: dict[SlotKind, SlotSummary]
    unfilled_reasons: list[UnfilledSlot]
    assignments: list[AssignmentResponse]


class AutoScheduleRequest(BaseModel):
    """Schema for batch auto-scheduling over a venue and date range."""

    venue_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None


class AutoScheduleShiftResult(BaseModel):
    """Outcome of auto-fill for one shift in a batch."""

    shift_id: UUID
    shift_date: date
    success: bool
    result: AutoFillResult | None = None
    error: str | None = None


class AutoScheduleResult(BaseModel):
    """Schema for batch auto-scheduling response."""

    processed: int
    assigned: int
    results: list[AutoScheduleShiftResult]


class CandidateResponse(BaseModel):
    """A candidate considered for a slot."""

    staff_id: UUID
    name: str
    is_lead: bool
    rank: int | None = None
    violations: list[str]
    waived_by: list[UUID]


class CandidatePoolResponse(BaseModel):
    """Ranked eligible pool and override-eligible candidates for a slot."""

    shift_id: UUID
    slot: SlotKind
    eligible: list[CandidateResponse]
    blocked: list[CandidateResponse]
