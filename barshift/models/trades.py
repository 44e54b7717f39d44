"""Shift trade table model using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from barshift.models.metadata import metadata

shift_trades = Table(
    "shift_trades",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("shift_id", Uuid, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False),
    # Assignment the proposer held when the trade was opened
    Column(
        "assignment_id",
        Uuid,
        ForeignKey("shift_assignments.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("proposer_id", Uuid, ForeignKey("staff_members.id"), nullable=False),
    Column("receiver_id", Uuid, ForeignKey("staff_members.id"), nullable=False),
    Column("status", String(20), nullable=False, server_default="PROPOSED"),
    Column("reason", Text, nullable=True),
    Column("approved_by", Uuid, nullable=True),
    Column("approved_at", DateTime(timezone=True), nullable=True),
    Column("declined_by", Uuid, nullable=True),
    Column("declined_reason", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "status IN ('PROPOSED', 'ACCEPTED', 'APPROVED', 'DECLINED', 'CANCELLED')",
        name="shift_trades_status_check",
    ),
    CheckConstraint("proposer_id <> receiver_id", name="shift_trades_distinct_parties_check"),
    Index("idx_shift_trades_shift_status", "shift_id", "status"),
)
