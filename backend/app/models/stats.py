"""AggregateStats model - summary of a location history window."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AggregateStats:
    """
    Summary statistics over a LocationHistory window.

    `avg_accuracy` is None when no snapshot in the window reported an
    accuracy; it is never coerced to 0.
    """

    total_updates: int
    avg_accuracy: Optional[float]
    active_violations: int
    period: str
    skipped_records: int = 0
