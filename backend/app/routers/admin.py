"""
Admin API endpoints.

All endpoints require admin access via the `X-Admin-API-Key` header.
"""

from fastapi import APIRouter, Depends

from app.auth.dependencies import verify_admin_access
from app.dependencies import get_registry
from app.schemas.safety import FleetOverviewResponse
from app.services.fleet_overview import summarize_fleet
from app.services.safety_monitor import WatchRegistry

router = APIRouter()


@router.get("/overview", response_model=FleetOverviewResponse)
async def get_fleet_overview(
    registry: WatchRegistry = Depends(get_registry),
    _admin: None = Depends(verify_admin_access),
):
    """
    Safety overview across all watched workers.

    Counts by status level, recent check-ins, and alerts for workers
    in warning or critical state (most severe first).
    """
    overview = summarize_fleet(registry.watchers())
    return FleetOverviewResponse.model_validate(overview)
