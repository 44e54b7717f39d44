"""Shift trade schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class TradeStatus(str, Enum):
    """Trade status enumeration."""

    PROPOSED = "PROPOSED"
    ACCEPTED = "ACCEPTED"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"


OPEN_TRADE_STATUSES = (TradeStatus.PROPOSED.value, TradeStatus.ACCEPTED.value)


class TradeCreate(BaseModel):
    """Schema for proposing a trade."""

    shift_id: UUID
    receiver_id: UUID
    reason: str | None = Field(None, max_length=1000)


class TradeDecline(BaseModel):
    """Schema for declining a trade."""

    reason: str | None = Field(None, max_length=1000)


class TradeResponse(BaseModel):
    """Schema for trade response."""

    id: UUID
    shift_id: UUID
    assignment_id: UUID | None = None
    proposer_id: UUID
    receiver_id: UUID
    status: TradeStatus
    reason: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    declined_by: UUID | None = None
    declined_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TradeFilters(BaseModel):
    """Schema for trade filtering."""

    shift_id: UUID | None = None
    staff_id: UUID | None = None
    status: TradeStatus | None = None
