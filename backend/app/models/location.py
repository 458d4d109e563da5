"""LocationSnapshot model - a single GPS reading reported for a worker."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LocationSnapshot:
    """
    One GPS/location reading at an instant.

    Created at the ingestion boundary (see `snapshot_parser`) and never
    mutated afterwards. Histories hold these newest first.
    """

    timestamp: datetime  # timezone-aware UTC
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # meters, None when the device did not report it
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    event_type: Optional[str] = None  # e.g. "checkin", "routine", "alert"

    def __repr__(self) -> str:
        return f"<LocationSnapshot {self.latitude}, {self.longitude} @ {self.timestamp.isoformat()}>"

    @property
    def has_accuracy(self) -> bool:
        return self.accuracy is not None
