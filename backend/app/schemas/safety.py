"""
Pydantic schemas for the safety endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models import StatusLevel


# Request schemas

class WatchRequest(BaseModel):
    """Schema for starting (or retargeting) a watcher."""
    subject_id: str = Field(..., min_length=1, max_length=100)


# Response schemas

class LocationResponse(BaseModel):
    """A single location snapshot."""
    timestamp: datetime
    local_time: str
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    event_type: Optional[str] = None
    maps_url: str


class CheckInResponse(BaseModel):
    """The most recent check-in."""
    timestamp: datetime
    local_time: str
    status: str
    notes: Optional[str] = None
    address: Optional[str] = None


class SafetyStatusResponse(BaseModel):
    """Derived safety status."""
    current: StatusLevel
    message: str
    hours_since_check_in: Optional[float] = None
    rule: str


class NearestFenceResponse(BaseModel):
    name: str
    distance_m: float

    class Config:
        from_attributes = True


class GeoFenceResponse(BaseModel):
    """Geo-fence membership as reported upstream."""
    is_inside: bool
    active_fence_count: int
    nearest_fence: Optional[NearestFenceResponse] = None

    class Config:
        from_attributes = True


class StatsResponse(BaseModel):
    """Aggregate statistics over the history window."""
    total_updates: int
    avg_accuracy: Optional[float] = None  # null means "N/A", not zero
    active_violations: int
    period: str
    skipped_records: int = 0

    class Config:
        from_attributes = True


class FreshnessResponse(BaseModel):
    """Staleness of the returned data."""
    stale: bool
    error: Optional[str] = None
    watched: bool
    fetched_at: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None


class FamilyStatusResponse(BaseModel):
    """Family portal view of one worker."""
    subject_id: str
    status: SafetyStatusResponse
    last_check_in: Optional[CheckInResponse] = None
    location: Optional[LocationResponse] = None
    location_history: list[LocationResponse] = []
    stats: StatsResponse
    freshness: FreshnessResponse


class LocationMapResponse(BaseModel):
    """Map view of one worker."""
    subject_id: str
    status: SafetyStatusResponse
    current_location: Optional[LocationResponse] = None
    location_history: list[LocationResponse] = []
    geofence_status: Optional[GeoFenceResponse] = None
    stats: StatsResponse
    embed_url: Optional[str] = None
    freshness: FreshnessResponse


class WatchResponse(BaseModel):
    """A running watcher."""
    subject_id: str
    running: bool
    family_interval_seconds: float
    map_interval_seconds: float
    family_stale: bool
    map_stale: bool


class SafetyAlertResponse(BaseModel):
    subject_id: str
    level: StatusLevel
    message: str
    last_check_in_at: Optional[datetime] = None
    stale: bool

    class Config:
        from_attributes = True


class FleetOverviewResponse(BaseModel):
    """Admin overview across watched workers."""
    total_workers: int
    safe_workers: int
    warning_workers: int
    critical_workers: int
    unknown_workers: int
    active_check_ins: int
    stale_workers: int
    alerts: list[SafetyAlertResponse]
    generated_at: datetime

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    """Schema for simple message responses."""
    message: str
