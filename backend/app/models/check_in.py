"""CheckIn model - an explicit worker-initiated safety confirmation."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CheckIn:
    """
    A safety check-in, distinct from passive location pings.

    `status` is the tag the worker chose ("safe", "warning", "emergency").
    """

    timestamp: datetime  # timezone-aware UTC
    status: str = "safe"
    notes: Optional[str] = None
    address: Optional[str] = None

    def __repr__(self) -> str:
        return f"<CheckIn {self.status} @ {self.timestamp.isoformat()}>"
