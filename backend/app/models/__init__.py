# Domain models
from app.models.check_in import CheckIn
from app.models.geofence import GeoFenceStatus, NearestFence
from app.models.location import LocationSnapshot
from app.models.safety_status import SafetyStatus, StatusLevel
from app.models.stats import AggregateStats

__all__ = [
    "CheckIn",
    "GeoFenceStatus",
    "NearestFence",
    "LocationSnapshot",
    "SafetyStatus",
    "StatusLevel",
    "AggregateStats",
]
