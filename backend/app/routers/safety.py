"""
Safety API endpoints.

Read endpoints serve the derived family and map views of a worker. When
the worker is being watched, the latest polled view is returned (possibly
stale, with an error banner); otherwise the view is fetched on demand.

Watch endpoints start, retarget and stop the background pollers and
require admin access.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.dependencies import verify_admin_access
from app.config import get_settings
from app.dependencies import get_registry, get_safety_client
from app.exceptions import TransportError
from app.models import CheckIn, LocationSnapshot
from app.schemas.safety import (
    CheckInResponse,
    FamilyStatusResponse,
    FreshnessResponse,
    GeoFenceResponse,
    LocationMapResponse,
    LocationResponse,
    MessageResponse,
    SafetyStatusResponse,
    StatsResponse,
    WatchRequest,
    WatchResponse,
)
from app.services.safety_client import SafetyApiClient
from app.services.safety_monitor import (
    FamilyStatusView,
    LocationMapView,
    SubjectWatcher,
    WatchRegistry,
    WatchState,
    fetch_family_view,
    fetch_map_view,
)
from app.utils.maps import maps_embed_url, maps_url
from app.utils.timezone import format_local_time

router = APIRouter()


# =============================================================================
# Response builders
# =============================================================================

def _location(snapshot: Optional[LocationSnapshot]) -> Optional[LocationResponse]:
    if snapshot is None:
        return None
    settings = get_settings()
    return LocationResponse(
        timestamp=snapshot.timestamp,
        local_time=format_local_time(snapshot.timestamp, settings.display_timezone),
        latitude=snapshot.latitude,
        longitude=snapshot.longitude,
        accuracy=snapshot.accuracy,
        address=snapshot.address,
        city=snapshot.city,
        country=snapshot.country,
        event_type=snapshot.event_type,
        maps_url=maps_url(snapshot.latitude, snapshot.longitude),
    )


def _check_in(check_in: Optional[CheckIn]) -> Optional[CheckInResponse]:
    if check_in is None:
        return None
    return CheckInResponse(
        timestamp=check_in.timestamp,
        local_time=format_local_time(check_in.timestamp, get_settings().display_timezone),
        status=check_in.status,
        notes=check_in.notes,
        address=check_in.address,
    )


def _status(view) -> SafetyStatusResponse:
    hours = view.status.hours_since_check_in
    return SafetyStatusResponse(
        current=view.status.level,
        message=view.status.message,
        # One decimal, rounded down, as shown to families
        hours_since_check_in=int(hours * 10) / 10 if hours is not None else None,
        rule=view.rule.value,
    )


def _freshness(state: WatchState, watched: bool) -> FreshnessResponse:
    return FreshnessResponse(
        stale=state.stale,
        error=state.error,
        watched=watched,
        fetched_at=state.last_success_at,
        last_attempt_at=state.last_attempt_at,
    )


def family_response(state: WatchState, watched: bool) -> FamilyStatusResponse:
    view: FamilyStatusView = state.view
    return FamilyStatusResponse(
        subject_id=view.subject_id,
        status=_status(view),
        last_check_in=_check_in(view.last_check_in),
        location=_location(view.location),
        location_history=[_location(s) for s in view.history],
        stats=StatsResponse.model_validate(view.stats),
        freshness=_freshness(state, watched),
    )


def map_response(state: WatchState, watched: bool) -> LocationMapResponse:
    view: LocationMapView = state.view
    current = view.current_location
    embed_url = None
    if current is not None:
        embed_url = maps_embed_url(current.latitude, current.longitude, get_settings().google_maps_api_key)
    return LocationMapResponse(
        subject_id=view.subject_id,
        status=_status(view),
        current_location=_location(current),
        location_history=[_location(s) for s in view.history],
        geofence_status=GeoFenceResponse.model_validate(view.geofence) if view.geofence else None,
        stats=StatsResponse.model_validate(view.stats),
        embed_url=embed_url,
        freshness=_freshness(state, watched),
    )


def _watch_response(watcher: SubjectWatcher) -> WatchResponse:
    return WatchResponse(
        subject_id=watcher.subject_id,
        running=watcher.is_running,
        family_interval_seconds=watcher.family_interval,
        map_interval_seconds=watcher.map_interval,
        family_stale=watcher.family_state.stale,
        map_stale=watcher.map_state.stale,
    )


def _fetched_state(view) -> WatchState:
    return WatchState(
        view=view,
        last_attempt_at=view.fetched_at,
        last_success_at=view.fetched_at,
    )


# =============================================================================
# View Endpoints
# =============================================================================

@router.get("/{subject_id}/status", response_model=FamilyStatusResponse)
async def get_family_status(
    subject_id: str,
    registry: WatchRegistry = Depends(get_registry),
    client: SafetyApiClient = Depends(get_safety_client),
):
    """
    Family view: derived status, last check-in, last known location.

    Stale-but-present data is returned with `freshness.stale = true`
    rather than an error.
    """
    watcher = registry.get(subject_id)
    if watcher is not None and watcher.family_state.view is not None:
        return family_response(watcher.family_state, watched=True)

    try:
        view = await fetch_family_view(client, subject_id)
    except TransportError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return family_response(_fetched_state(view), watched=watcher is not None)


@router.get("/{subject_id}/location", response_model=LocationMapResponse)
async def get_location_map(
    subject_id: str,
    registry: WatchRegistry = Depends(get_registry),
    client: SafetyApiClient = Depends(get_safety_client),
):
    """
    Map view: current location, history window, geo-fence and stats.
    """
    watcher = registry.get(subject_id)
    if watcher is not None and watcher.map_state.view is not None:
        return map_response(watcher.map_state, watched=True)

    try:
        view = await fetch_map_view(client, subject_id)
    except TransportError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return map_response(_fetched_state(view), watched=watcher is not None)


# =============================================================================
# Watch Endpoints
# =============================================================================

@router.get("/watch", response_model=list[WatchResponse])
async def list_watchers(
    registry: WatchRegistry = Depends(get_registry),
    _admin: None = Depends(verify_admin_access),
):
    """List all watched workers."""
    return [_watch_response(w) for w in registry.watchers()]


@router.post("/watch", response_model=WatchResponse, status_code=status.HTTP_201_CREATED)
async def start_watching(
    data: WatchRequest,
    registry: WatchRegistry = Depends(get_registry),
    _admin: None = Depends(verify_admin_access),
):
    """Start polling a worker's family and map views."""
    watcher = await registry.watch(data.subject_id)
    return _watch_response(watcher)


@router.put("/watch/{subject_id}", response_model=WatchResponse)
async def retarget_watcher(
    subject_id: str,
    data: WatchRequest,
    registry: WatchRegistry = Depends(get_registry),
    _admin: None = Depends(verify_admin_access),
):
    """
    Point an existing watcher at another worker. Polling of the old
    worker is fully cancelled before the new one begins.
    """
    if subject_id not in registry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subject {subject_id} is not being watched",
        )
    watcher = await registry.retarget(subject_id, data.subject_id)
    return _watch_response(watcher)


@router.post("/watch/{subject_id}/refresh", response_model=MessageResponse)
async def refresh_watcher(
    subject_id: str,
    registry: WatchRegistry = Depends(get_registry),
    _admin: None = Depends(verify_admin_access),
):
    """Trigger an immediate refresh outside the schedule."""
    watcher = registry.get(subject_id)
    if watcher is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subject {subject_id} is not being watched",
        )
    watcher.refresh_now()
    return MessageResponse(message=f"Refresh requested for {subject_id}")


@router.delete("/watch/{subject_id}", response_model=MessageResponse)
async def stop_watching(
    subject_id: str,
    registry: WatchRegistry = Depends(get_registry),
    _admin: None = Depends(verify_admin_access),
):
    """Stop polling a worker."""
    if not await registry.unwatch(subject_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subject {subject_id} is not being watched",
        )
    return MessageResponse(message=f"Stopped watching {subject_id}")
