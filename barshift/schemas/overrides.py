"""Override schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class ViolationType(str, Enum):
    """Constraint an override waives."""

    CUTOFF = "cutoff"
    REQUEST_OFF = "request_off"
    DOUBLE_BOOKING = "double_booking"
    LEAD_SHORTAGE = "lead_shortage"


class OverrideStatus(str, Enum):
    """Override status enumeration."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ACTIVE = "ACTIVE"


class ApproverRole(str, Enum):
    """Capacity in which an approval is recorded."""

    STAFF = "STAFF"
    MANAGER = "MANAGER"


class OverrideHistoryEntry(BaseModel):
    """One entry of an override's append-only history."""

    action: str
    # None for transitions made by the engine itself
    actor_id: UUID | None = None
    at: datetime
    note: str | None = None


class OverrideCreate(BaseModel):
    """Schema for requesting an override."""

    shift_id: UUID
    staff_id: UUID
    violation_type: ViolationType
    reason: str = Field(..., min_length=10, max_length=1000)


class OverrideDecision(BaseModel):
    """Schema for an approver's decision."""

    approved: bool
    comment: str | None = Field(None, max_length=1000)


class OverrideApprovalResponse(BaseModel):
    """Schema for a recorded approval."""

    id: UUID
    approver_id: UUID
    approver_role: ApproverRole
    approved: bool
    comment: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class OverrideResponse(BaseModel):
    """Schema for override response."""

    id: UUID
    shift_id: UUID
    staff_id: UUID
    violation_type: ViolationType
    reason: str
    status: OverrideStatus
    requested_by: UUID
    history: list[OverrideHistoryEntry]
    approvals: list[OverrideApprovalResponse] = Field(default_factory=list)
    required_approvers: list[ApproverRole] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class OverrideFilters(BaseModel):
    """Schema for override filtering."""

    shift_id: UUID | None = None
    staff_id: UUID | None = None
    status: OverrideStatus | None = None
