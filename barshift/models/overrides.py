"""Constraint override and approval table models."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)

from barshift.models.metadata import metadata

overrides = Table(
    "overrides",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("shift_id", Uuid, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False),
    Column("staff_id", Uuid, ForeignKey("staff_members.id"), nullable=False),
    Column("violation_type", String(30), nullable=False),
    Column("reason", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default="PENDING"),
    Column("requested_by", Uuid, nullable=False),
    # Append-only list of OverrideHistoryEntry
    Column("history", JSON, nullable=False, default=list),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "violation_type IN ('cutoff', 'request_off', 'double_booking', 'lead_shortage')",
        name="overrides_violation_type_check",
    ),
    CheckConstraint(
        "status IN ('PENDING', 'APPROVED', 'DECLINED', 'ACTIVE')",
        name="overrides_status_check",
    ),
    Index("idx_overrides_shift_staff", "shift_id", "staff_id", "violation_type"),
)

override_approvals = Table(
    "override_approvals",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column(
        "override_id", Uuid, ForeignKey("overrides.id", ondelete="CASCADE"), nullable=False
    ),
    Column("approver_id", Uuid, ForeignKey("staff_members.id"), nullable=False),
    # STAFF | MANAGER
    Column("approver_role", String(20), nullable=False),
    Column("approved", Boolean, nullable=False),
    Column("comment", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "approver_role IN ('STAFF', 'MANAGER')",
        name="override_approvals_role_check",
    ),
    UniqueConstraint("override_id", "approver_id", name="uq_override_approvals_approver"),
)
