"""Common test fixtures for the safety service tests."""

from datetime import timedelta

import httpx
import pytest

from app.models import CheckIn, GeoFenceStatus, LocationSnapshot, NearestFence
from app.services.safety_client import SafetyApiClient
from helpers import NOW, UPSTREAM


@pytest.fixture
def now():
    """Fixed evaluation instant."""
    return NOW


@pytest.fixture
def make_snapshot():
    """Factory for LocationSnapshot with sensible defaults."""
    def _make(minutes_ago=0, accuracy=10.0, event_type="routine", latitude=32.0853, longitude=34.7818):
        return LocationSnapshot(
            timestamp=NOW - timedelta(minutes=minutes_ago),
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            event_type=event_type,
        )
    return _make


@pytest.fixture
def make_check_in():
    def _make(hours_ago):
        return CheckIn(timestamp=NOW - timedelta(hours=hours_ago), status="safe")
    return _make


@pytest.fixture
def inside_fence():
    return GeoFenceStatus(is_inside=True, active_fence_count=2, nearest_fence=NearestFence("Site A", 40.0))


@pytest.fixture
def outside_fence():
    return GeoFenceStatus(is_inside=False, active_fence_count=2, nearest_fence=NearestFence("Site A", 1250.0))


@pytest.fixture
def family_payload():
    """Upstream `/safety/family/{id}/status` data (unwrapped)."""
    return {
        "status": {"current": "safe", "message": "All systems normal", "hoursSinceCheckIn": 2.0},
        "lastCheckIn": {
            "timestamp": (NOW - timedelta(hours=2)).isoformat(),
            "status": "safe",
            "notes": "Arrived at site",
            "location": {"address": "Dizengoff Street 50", "city": "Tel Aviv", "country": "Israel"},
        },
        "location": {
            "latitude": 32.0853,
            "longitude": 34.7818,
            "accuracy": 12,
            "timestamp": (NOW - timedelta(minutes=5)).isoformat(),
            "address": "Dizengoff Street 50",
            "city": "Tel Aviv",
            "country": "Israel",
        },
        "locationHistory": [
            {"latitude": 32.08, "longitude": 34.78, "accuracy": 10, "timestamp": (NOW - timedelta(hours=3)).isoformat(), "eventType": "routine"},
            {"latitude": 32.09, "longitude": 34.79, "accuracy": 20, "timestamp": (NOW - timedelta(hours=1)).isoformat(), "eventType": "checkin"},
            {"latitude": None, "longitude": 34.79, "timestamp": (NOW - timedelta(hours=2)).isoformat()},
        ],
    }


@pytest.fixture
def location_payload():
    """Upstream `/safety/worker/{id}/location` data (unwrapped)."""
    return {
        "currentLocation": {
            "latitude": 32.0853,
            "longitude": 34.7818,
            "accuracy": 8,
            "timestamp": (NOW - timedelta(minutes=1)).isoformat(),
            "eventType": "update",
        },
        "locationHistory": [
            {"latitude": 32.08, "longitude": 34.78, "accuracy": 10, "timestamp": (NOW - timedelta(hours=2)).isoformat(), "eventType": "update"},
            {"latitude": 32.07, "longitude": 34.77, "timestamp": (NOW - timedelta(hours=1)).isoformat(), "eventType": "geofence_exit"},
            {"latitude": 32.06, "longitude": 34.76, "accuracy": 30, "timestamp": (NOW - timedelta(minutes=30)).isoformat(), "eventType": "update"},
        ],
        "geoFenceStatus": {
            "isInside": True,
            "activeFences": 3,
            "nearestFence": {"name": "Construction Site - Dizengoff Street", "distance": 42.5},
        },
        "stats": {"totalUpdates": 3, "avgAccuracy": 20, "activeViolations": 1, "period": "1 days"},
    }


@pytest.fixture
def make_api_client():
    """Build a SafetyApiClient whose requests are answered by `handler`."""
    def _make(handler, api_token=None):
        client = SafetyApiClient(
            base_url=UPSTREAM,
            timeout=5,
            api_token=api_token,
            transport=httpx.MockTransport(handler),
        )
        return client

    return _make

