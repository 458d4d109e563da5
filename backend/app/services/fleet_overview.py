"""
Fleet overview - admin summary across all watched workers.

Counts watched workers per status level, how many checked in recently,
and lists the ones that need attention (warning or critical).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from app.config import get_settings
from app.models import StatusLevel
from app.services.safety_monitor import FamilyStatusView, SubjectWatcher
from app.utils.timezone import utc_now


@dataclass(frozen=True)
class SafetyAlert:
    """A worker whose status needs attention."""
    subject_id: str
    level: StatusLevel
    message: str
    last_check_in_at: Optional[datetime] = None
    stale: bool = False


@dataclass(frozen=True)
class FleetOverview:
    total_workers: int = 0
    safe_workers: int = 0
    warning_workers: int = 0
    critical_workers: int = 0
    unknown_workers: int = 0
    active_check_ins: int = 0
    stale_workers: int = 0
    alerts: tuple[SafetyAlert, ...] = field(default_factory=tuple)
    generated_at: Optional[datetime] = None


# Most severe first
_SEVERITY = {
    StatusLevel.CRITICAL: 0,
    StatusLevel.WARNING: 1,
    StatusLevel.UNKNOWN: 2,
    StatusLevel.SAFE: 3,
}


def summarize_fleet(
    watchers: Iterable[SubjectWatcher],
    active_check_in_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> FleetOverview:
    """
    Summarize the family views of all watchers.

    Workers whose first fetch has not completed yet count as unknown.
    A check-in is "active" when it is at most `active_check_in_hours` old.
    """
    if active_check_in_hours is None:
        active_check_in_hours = get_settings().active_check_in_hours

    counts = {level: 0 for level in StatusLevel}
    active = 0
    stale = 0
    alerts: list[SafetyAlert] = []
    total = 0

    for watcher in watchers:
        total += 1
        state = watcher.family_state
        view: Optional[FamilyStatusView] = state.view
        if state.stale:
            stale += 1
        if view is None:
            counts[StatusLevel.UNKNOWN] += 1
            continue

        status = view.status
        counts[status.level] += 1
        if status.hours_since_check_in is not None and status.hours_since_check_in <= active_check_in_hours:
            active += 1
        if status.needs_attention:
            alerts.append(SafetyAlert(
                subject_id=view.subject_id,
                level=status.level,
                message=status.message,
                last_check_in_at=view.last_check_in.timestamp if view.last_check_in else None,
                stale=state.stale,
            ))

    alerts.sort(key=lambda alert: (_SEVERITY[alert.level], alert.subject_id))

    return FleetOverview(
        total_workers=total,
        safe_workers=counts[StatusLevel.SAFE],
        warning_workers=counts[StatusLevel.WARNING],
        critical_workers=counts[StatusLevel.CRITICAL],
        unknown_workers=counts[StatusLevel.UNKNOWN],
        active_check_ins=active,
        stale_workers=stale,
        alerts=tuple(alerts),
        generated_at=now or utc_now(),
    )
