"""
History aggregation - summary statistics over a location history window.

The window itself is bounded by the upstream query (`days=`); this module
trusts what it is given but sorts defensively, so the result never depends
on the order records arrived in.
"""

import math
from typing import Iterable, Optional

from app.config import get_settings
from app.models import AggregateStats, LocationSnapshot


def window_label(days: int) -> str:
    """Human label for a history window ("24h" for one day, "3d" otherwise)."""
    if days == 1:
        return "24h"
    return f"{days}d"


def sort_history(history: Iterable[LocationSnapshot]) -> list[LocationSnapshot]:
    """Return a new list ordered newest first."""
    return sorted(
        history,
        key=lambda s: (s.timestamp, s.latitude, s.longitude, s.accuracy or 0.0, s.event_type or ""),
        reverse=True,
    )


def aggregate(
    history: Iterable[LocationSnapshot],
    window: str,
    limit: Optional[int] = None,
    violation_event_types: Optional[Iterable[str]] = None,
    skipped_records: int = 0,
) -> AggregateStats:
    """
    Reduce a location history to AggregateStats.

    Args:
        history: Snapshots in any order.
        window: Label of the window, e.g. "24h".
        limit: Keep only the newest `limit` snapshots (after sorting).
        violation_event_types: Event type tags counted as fence violations.
            Defaults to the configured tags.
        skipped_records: Records dropped during parsing, carried through.

    Returns:
        AggregateStats. An empty history gives zero counts and no average.
    """
    if violation_event_types is None:
        violation_event_types = get_settings().violation_event_types
    violation_tags = {tag.lower() for tag in violation_event_types}

    ordered = sort_history(history)
    if limit is not None:
        ordered = ordered[:limit]

    accuracies = [s.accuracy for s in ordered if s.has_accuracy]
    avg_accuracy = math.fsum(accuracies) / len(accuracies) if accuracies else None

    violations = sum(
        1 for s in ordered
        if s.event_type is not None and s.event_type.lower() in violation_tags
    )

    return AggregateStats(
        total_updates=len(ordered),
        avg_accuracy=avg_accuracy,
        active_violations=violations,
        period=window,
        skipped_records=skipped_records,
    )
