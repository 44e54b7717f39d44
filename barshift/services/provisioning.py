"""One-time provisioning of the initial administrator account."""

from typing import Any

import structlog
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from barshift.core.exceptions import ConflictException
from barshift.models.staff import staff_members
from barshift.schemas.staff import StaffRole, StaffStatus

logger = structlog.get_logger(__name__)


async def provision_super_admin(
    db: AsyncSession,
    email: str,
    name: str,
) -> tuple[dict[str, Any], bool]:
    """
    Create the SUPER_ADMIN account unless one already exists.

    Request handlers never create administrators on the fly; this runs once
    at deployment time.

    Args:
        db: Database session
        email: Administrator email
        name: Administrator display name

    Returns:
        The administrator row and whether it was created now

    Raises:
        ConflictException: If the email belongs to a non-admin staff member
    """
    result = await db.execute(
        select(staff_members)
        .where(staff_members.c.role == StaffRole.SUPER_ADMIN.value)
        .order_by(staff_members.c.created_at)
    )
    existing = result.mappings().first()
    if existing:
        logger.info("super_admin_exists", staff_id=str(existing["id"]))
        return dict(existing), False

    result = await db.execute(select(staff_members.c.id).where(staff_members.c.email == email))
    if result.first():
        raise ConflictException(f"{email} already belongs to a staff member")

    result = await db.execute(
        insert(staff_members)
        .values(
            email=email,
            name=name,
            role=StaffRole.SUPER_ADMIN.value,
            status=StaffStatus.ACTIVE.value,
            preferred_venues_order=[],
            venue_rankings={},
        )
        .returning(staff_members)
    )
    row = dict(result.mappings().first())
    await db.commit()

    logger.info("super_admin_provisioned", staff_id=str(row["id"]))
    return row, True
