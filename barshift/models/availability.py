"""Availability and external calendar block table models."""

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

availabilities = Table(
    "availabilities",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column(
        "staff_id", Uuid, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False
    ),
    # YYYY-MM
    Column("month", String(7), nullable=False),
    # Serialized AvailabilityGrid
    Column("data", JSON, nullable=False),
    Column("submitted_at", DateTime(timezone=True), nullable=True),
    Column("locked_at", DateTime(timezone=True), nullable=True),
    Column("is_locked", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("staff_id", "month", name="uq_availabilities_staff_month"),
)

external_blocks = Table(
    "external_blocks",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column(
        "staff_id", Uuid, ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False
    ),
    # Venue-local wall clock, same frame as shift dates and times
    Column("starts_at", DateTime, nullable=False),
    Column("ends_at", DateTime, nullable=False),
    Column("source", String(50), nullable=False),
    Column("description", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("ends_at > starts_at", name="external_blocks_range_check"),
    Index("idx_external_blocks_staff", "staff_id", "starts_at"),
)
