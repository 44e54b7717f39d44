"""Venues table model using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from barshift.models.metadata import metadata

venues = Table(
    "venues",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", Text, nullable=False),
    Column("priority", Integer, nullable=False, server_default="0"),
    Column("status", String(20), nullable=False, server_default="ACTIVE"),
    # Day of month by which staff must submit availability
    Column("availability_deadline_day", Integer, nullable=False, server_default="10"),
    Column("tip_pool_enabled", Boolean, nullable=False, server_default="0"),
    Column("trade_deadline_hours", Integer, nullable=False, server_default="24"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "availability_deadline_day BETWEEN 1 AND 28",
        name="venues_deadline_day_check",
    ),
    CheckConstraint(
        "trade_deadline_hours BETWEEN 0 AND 168",
        name="venues_trade_deadline_check",
    ),
    CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name="venues_status_check"),
)
