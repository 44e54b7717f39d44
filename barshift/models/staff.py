"""Staff members table model using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    String,
    Table,
    Text,
    Time,
    Uuid,
    func,
)

from barshift.models.metadata import metadata

staff_members = Table(
    "staff_members",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", Text, nullable=False),
    Column("role", String(20), nullable=False),
    Column("status", String(20), nullable=False, server_default="ACTIVE"),
    # Capability flag, only meaningful for bartenders
    Column("is_lead", Boolean, nullable=False, server_default="0"),
    # Day job: shifts may not start before the cutoff without an override
    Column("has_day_job", Boolean, nullable=False, server_default="0"),
    Column("day_job_cutoff", Time, nullable=True),
    # Ordered venue ids; membership implies eligibility to work there
    Column("preferred_venues_order", JSON, nullable=False, default=list),
    # {venue_id: rank}, lower rank = higher priority
    Column("venue_rankings", JSON, nullable=False, default=dict),
    Column("notification_prefs", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "role IN ('BARTENDER', 'BARBACK', 'MANAGER', 'GENERAL_MANAGER', 'SUPER_ADMIN')",
        name="staff_members_role_check",
    ),
    CheckConstraint(
        "status IN ('ACTIVE', 'INACTIVE', 'PENDING')",
        name="staff_members_status_check",
    ),
    CheckConstraint(
        "is_lead = false OR role = 'BARTENDER'",
        name="staff_members_lead_role_check",
    ),
    Index("idx_staff_members_role_status", "role", "status"),
)
