"""
Dependencies that hand out the long-lived objects created in the lifespan.
"""

from fastapi import Request

from app.services.safety_client import SafetyApiClient
from app.services.safety_monitor import WatchRegistry


def get_safety_client(request: Request) -> SafetyApiClient:
    """Upstream API client shared by all requests."""
    return request.app.state.safety_client


def get_registry(request: Request) -> WatchRegistry:
    """Registry of watched subjects."""
    return request.app.state.registry
