"""GeoFenceStatus model - fence membership as computed by the upstream API."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NearestFence:
    """The closest defined fence and the distance to it."""
    name: str
    distance_m: float


@dataclass(frozen=True)
class GeoFenceStatus:
    """
    Whether the worker is inside an authorized zone.

    The fence geometry lives server-side; this service only consumes the
    result.
    """

    is_inside: bool
    active_fence_count: int = 0
    nearest_fence: Optional[NearestFence] = None

    def __repr__(self) -> str:
        where = "inside" if self.is_inside else "outside"
        return f"<GeoFenceStatus {where} ({self.active_fence_count} active)>"
