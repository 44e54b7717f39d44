"""Tip baseline schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from barshift.schemas.shifts import AssignmentResponse


class TipPoolInput(BaseModel):
    """Schema for entering a shift's tip pool total."""

    total: Decimal = Field(..., ge=0, le=Decimal("999999.99"), decimal_places=2)


class TipPublishInput(BaseModel):
    """Schema for (re)publishing tips, optionally with a new pool total."""

    total: Decimal | None = Field(None, ge=0, le=Decimal("999999.99"), decimal_places=2)


class TipBaselineResponse(BaseModel):
    """Per-person baseline split of a tip pool."""

    shift_id: UUID
    total: Decimal
    per_person: Decimal
    unallocated: Decimal
    currency: str
    tips_published: bool
    tips_published_at: datetime | None = None
    tips_published_by: UUID | None = None
    assignments: list[AssignmentResponse]
