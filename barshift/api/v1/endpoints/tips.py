"""Tip baseline endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from barshift.dependencies import AsOf, DatabaseSession, Events, ManagerUser
from barshift.schemas.tips import TipBaselineResponse, TipPoolInput, TipPublishInput
from barshift.services.tip_service import TipService

router = APIRouter()


@router.post(
    "/{shift_id}/tips/baseline",
    response_model=TipBaselineResponse,
    status_code=status.HTTP_200_OK,
    summary="Calculate baseline tip split",
)
async def calculate_tip_baseline(
    shift_id: UUID,
    data: TipPoolInput,
    manager: ManagerUser,
    db: DatabaseSession,
    as_of: AsOf,
) -> TipBaselineResponse:
    """
    Enter a pool total and split it evenly over the current roster.

    Args:
        shift_id: Shift ID
        data: Pool total
        manager: Authenticated manager
        db: Database session
        as_of: Request instant

    Returns:
        Draft per-person split
    """
    service = TipService(db)
    return await service.calculate_baseline(shift_id, data.total, manager, as_of)


@router.post(
    "/{shift_id}/tips/publish",
    response_model=TipBaselineResponse,
    status_code=status.HTTP_200_OK,
    summary="Publish tips",
)
async def publish_tips(
    shift_id: UUID,
    data: TipPublishInput,
    manager: ManagerUser,
    db: DatabaseSession,
    events: Events,
    as_of: AsOf,
) -> TipBaselineResponse:
    """Publish or republish the split; publication is never undone."""
    service = TipService(db, events)
    return await service.publish(shift_id, manager, as_of, total=data.total)
