"""Shift and shift assignment table models using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Time,
    UniqueConstraint,
    Uuid,
    func,
)

from barshift.models.metadata import metadata

shifts = Table(
    "shifts",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("venue_id", Uuid, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
    # Venue-local wall clock; an end time at or before the start ends the next day
    Column("date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("bartenders_required", Integer, nullable=False, server_default="1"),
    Column("barbacks_required", Integer, nullable=False, server_default="0"),
    Column("leads_required", Integer, nullable=False, server_default="0"),
    # Tip pool
    Column("tip_pool_total", Numeric(10, 2), nullable=True),
    Column("tips_published", Boolean, nullable=False, server_default="0"),
    Column("tips_published_at", DateTime(timezone=True), nullable=True),
    Column("tips_published_by", Uuid, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "bartenders_required >= 0 AND barbacks_required >= 0 AND leads_required >= 0",
        name="shifts_required_counts_check",
    ),
    CheckConstraint(
        "leads_required <= bartenders_required",
        name="shifts_leads_within_bartenders_check",
    ),
    Index("idx_shifts_venue_date", "venue_id", "date"),
)

shift_assignments = Table(
    "shift_assignments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("shift_id", Uuid, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False),
    Column("staff_id", Uuid, ForeignKey("staff_members.id"), nullable=False),
    # LEAD | BARTENDER | BARBACK; role and lead flag are derived from it
    Column("slot", String(20), nullable=False),
    Column("tip_amount", Numeric(10, 2), nullable=True),
    Column("tip_currency", String(3), nullable=True),
    Column("tip_entered_by", Uuid, nullable=True),
    Column("tip_entered_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "slot IN ('LEAD', 'BARTENDER', 'BARBACK')",
        name="shift_assignments_slot_check",
    ),
    UniqueConstraint("shift_id", "staff_id", name="uq_shift_assignments_shift_staff"),
    Index("idx_shift_assignments_staff", "staff_id"),
)
