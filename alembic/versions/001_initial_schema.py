"""Initial schema - staff, venues, shifts, availability, overrides, trades.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "staff_members",
        _id(),
        sa.Column("email", sa.VARCHAR(length=255), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("role", sa.VARCHAR(length=20), nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), server_default="ACTIVE", nullable=False),
        sa.Column("is_lead", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("has_day_job", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("day_job_cutoff", sa.Time(), nullable=True),
        sa.Column(
            "preferred_venues_order", sa.JSON(), server_default=sa.text("'[]'"), nullable=False
        ),
        sa.Column("venue_rankings", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.Column("notification_prefs", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('BARTENDER', 'BARBACK', 'MANAGER', 'GENERAL_MANAGER', 'SUPER_ADMIN')",
            name="staff_members_role_check",
        ),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'INACTIVE', 'PENDING')",
            name="staff_members_status_check",
        ),
        sa.CheckConstraint(
            "is_lead = false OR role = 'BARTENDER'",
            name="staff_members_lead_role_check",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_staff_members_role_status", "staff_members", ["role", "status"])

    op.create_table(
        "venues",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), server_default="ACTIVE", nullable=False),
        sa.Column("availability_deadline_day", sa.Integer(), server_default="10", nullable=False),
        sa.Column(
            "tip_pool_enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("trade_deadline_hours", sa.Integer(), server_default="24", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "availability_deadline_day BETWEEN 1 AND 28",
            name="venues_deadline_day_check",
        ),
        sa.CheckConstraint(
            "trade_deadline_hours BETWEEN 0 AND 168",
            name="venues_trade_deadline_check",
        ),
        sa.CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name="venues_status_check"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "shifts",
        _id(),
        sa.Column("venue_id", postgresql.UUID(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("bartenders_required", sa.Integer(), server_default="1", nullable=False),
        sa.Column("barbacks_required", sa.Integer(), server_default="0", nullable=False),
        sa.Column("leads_required", sa.Integer(), server_default="0", nullable=False),
        sa.Column("tip_pool_total", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "tips_published", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("tips_published_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("tips_published_by", postgresql.UUID(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "bartenders_required >= 0 AND barbacks_required >= 0 AND leads_required >= 0",
            name="shifts_required_counts_check",
        ),
        sa.CheckConstraint(
            "leads_required <= bartenders_required",
            name="shifts_leads_within_bartenders_check",
        ),
        sa.ForeignKeyConstraint(["venue_id"], ["venues.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_shifts_venue_date", "shifts", ["venue_id", "date"])

    op.create_table(
        "shift_assignments",
        _id(),
        sa.Column("shift_id", postgresql.UUID(), nullable=False),
        sa.Column("staff_id", postgresql.UUID(), nullable=False),
        sa.Column("slot", sa.VARCHAR(length=20), nullable=False),
        sa.Column("tip_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("tip_currency", sa.VARCHAR(length=3), nullable=True),
        sa.Column("tip_entered_by", postgresql.UUID(), nullable=True),
        sa.Column("tip_entered_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "slot IN ('LEAD', 'BARTENDER', 'BARBACK')",
            name="shift_assignments_slot_check",
        ),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff_members.id"]),
        sa.PrimaryKeyConstraint("id"),
        # One row per staff member per shift; concurrent writers rely on it
        sa.UniqueConstraint("shift_id", "staff_id", name="uq_shift_assignments_shift_staff"),
    )
    op.create_index("idx_shift_assignments_staff", "shift_assignments", ["staff_id"])

    op.create_table(
        "availabilities",
        _id(),
        sa.Column("staff_id", postgresql.UUID(), nullable=False),
        sa.Column("month", sa.VARCHAR(length=7), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("submitted_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("locked_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("is_locked", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["staff_id"], ["staff_members.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("staff_id", "month", name="uq_availabilities_staff_month"),
    )

    op.create_table(
        "external_blocks",
        _id(),
        sa.Column("staff_id", postgresql.UUID(), nullable=False),
        sa.Column("starts_at", postgresql.TIMESTAMP(timezone=False), nullable=False),
        sa.Column("ends_at", postgresql.TIMESTAMP(timezone=False), nullable=False),
        sa.Column("source", sa.VARCHAR(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint("ends_at > starts_at", name="external_blocks_range_check"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff_members.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_external_blocks_staff", "external_blocks", ["staff_id", "starts_at"])

    op.create_table(
        "overrides",
        _id(),
        sa.Column("shift_id", postgresql.UUID(), nullable=False),
        sa.Column("staff_id", postgresql.UUID(), nullable=False),
        sa.Column("violation_type", sa.VARCHAR(length=30), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), server_default="PENDING", nullable=False),
        sa.Column("requested_by", postgresql.UUID(), nullable=False),
        sa.Column("history", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "violation_type IN ('cutoff', 'request_off', 'double_booking', 'lead_shortage')",
            name="overrides_violation_type_check",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'DECLINED', 'ACTIVE')",
            name="overrides_status_check",
        ),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff_members.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_overrides_shift_staff", "overrides", ["shift_id", "staff_id", "violation_type"]
    )

    op.create_table(
        "override_approvals",
        _id(),
        sa.Column("override_id", postgresql.UUID(), nullable=False),
        sa.Column("approver_id", postgresql.UUID(), nullable=False),
        sa.Column("approver_role", sa.VARCHAR(length=20), nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "approver_role IN ('STAFF', 'MANAGER')",
            name="override_approvals_role_check",
        ),
        sa.ForeignKeyConstraint(["override_id"], ["overrides.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["approver_id"], ["staff_members.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("override_id", "approver_id", name="uq_override_approvals_approver"),
    )

    op.create_table(
        "shift_trades",
        _id(),
        sa.Column("shift_id", postgresql.UUID(), nullable=False),
        sa.Column("assignment_id", postgresql.UUID(), nullable=True),
        sa.Column("proposer_id", postgresql.UUID(), nullable=False),
        sa.Column("receiver_id", postgresql.UUID(), nullable=False),
        sa.Column("status", sa.VARCHAR(length=20), server_default="PROPOSED", nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("approved_by", postgresql.UUID(), nullable=True),
        sa.Column("approved_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("declined_by", postgresql.UUID(), nullable=True),
        sa.Column("declined_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('PROPOSED', 'ACCEPTED', 'APPROVED', 'DECLINED', 'CANCELLED')",
            name="shift_trades_status_check",
        ),
        sa.CheckConstraint(
            "proposer_id <> receiver_id", name="shift_trades_distinct_parties_check"
        ),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["assignment_id"], ["shift_assignments.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["proposer_id"], ["staff_members.id"]),
        sa.ForeignKeyConstraint(["receiver_id"], ["staff_members.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_shift_trades_shift_status", "shift_trades", ["shift_id", "status"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("idx_shift_trades_shift_status", table_name="shift_trades")
    op.drop_table("shift_trades")
    op.drop_table("override_approvals")
    op.drop_index("idx_overrides_shift_staff", table_name="overrides")
    op.drop_table("overrides")
    op.drop_index("idx_external_blocks_staff", table_name="external_blocks")
    op.drop_table("external_blocks")
    op.drop_table("availabilities")
    op.drop_index("idx_shift_assignments_staff", table_name="shift_assignments")
    op.drop_table("shift_assignments")
    op.drop_index("idx_shifts_venue_date", table_name="shifts")
    op.drop_table("shifts")
    op.drop_table("venues")
    op.drop_index("idx_staff_members_role_status", table_name="staff_members")
    op.drop_table("staff_members")
