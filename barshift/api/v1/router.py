"""API v1 router configuration."""

from fastapi import APIRouter

from barshift.api.v1.endpoints import (
    availability,
    health,
    overrides,
    shifts,
    tips,
    trades,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(shifts.router, prefix="/shifts", tags=["Shifts"])
api_router.include_router(tips.router, prefix="/shifts", tags=["Tips"])
api_router.include_router(overrides.router, prefix="/overrides", tags=["Overrides"])
api_router.include_router(trades.router, prefix="/trades", tags=["Trades"])
api_router.include_router(availability.router, prefix="/availability", tags=["Availability"])
