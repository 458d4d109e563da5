"""SafetyStatus model - the derived, ephemeral safety view of a worker."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StatusLevel(str, Enum):
    """Fixed set of status levels, ordered by severity below."""
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SafetyStatus:
    """
    Recomputed on every poll cycle, never persisted.
    """

    level: StatusLevel
    message: str
    hours_since_check_in: Optional[float] = None

    def __repr__(self) -> str:
        return f"<SafetyStatus {self.level.value}: {self.message}>"

    @property
    def needs_attention(self) -> bool:
        """True for levels that raise an alert on the overview."""
        return self.level in (StatusLevel.WARNING, StatusLevel.CRITICAL)
