"""
Safety Status Resolver

Derives one SafetyStatus from the latest location, the last check-in and
the geo-fence membership reported upstream.

The decision policy is an ordered rule list; the first rule that returns a
status wins:

    1. no_data          - nothing known about the worker -> unknown
    2. outside_fence    - outside every authorized zone -> critical
    3. check_in_recency - > 24h critical, > 8h warning, else safe
    4. location_only    - live location but no check-in record -> safe

Fence violation dominates recency. `hours_since_check_in` is reported
whenever a check-in exists, whichever rule fired.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Tuple

from app.config import get_settings
from app.models import CheckIn, GeoFenceStatus, LocationSnapshot, SafetyStatus, StatusLevel
from app.utils.timezone import hours_between, utc_now


class RuleTag(str, Enum):
    """Identifies which rule produced a status."""
    NO_DATA = "no_data"
    OUTSIDE_FENCE = "outside_fence"
    CHECK_IN_RECENCY = "check_in_recency"
    LOCATION_ONLY = "location_only"


@dataclass(frozen=True)
class Thresholds:
    """Check-in recency thresholds in hours (strictly greater than)."""
    warning_after_hours: float = 8.0
    critical_after_hours: float = 24.0

    @classmethod
    def from_settings(cls) -> "Thresholds":
        settings = get_settings()
        return cls(
            warning_after_hours=settings.warning_after_hours,
            critical_after_hours=settings.critical_after_hours,
        )


@dataclass(frozen=True)
class ResolverInput:
    """Everything a rule may look at."""
    latest: Optional[LocationSnapshot]
    last_check_in: Optional[CheckIn]
    fence: Optional[GeoFenceStatus]
    hours_since_check_in: Optional[float]
    thresholds: Thresholds


@dataclass(frozen=True)
class StatusRule:
    """One entry of the ordered decision policy."""
    tag: RuleTag
    evaluate: Callable[[ResolverInput], Optional[SafetyStatus]]


def _no_data(ctx: ResolverInput) -> Optional[SafetyStatus]:
    if ctx.latest is None and ctx.last_check_in is None:
        return SafetyStatus(StatusLevel.UNKNOWN, "No location data available")
    return None


def _outside_fence(ctx: ResolverInput) -> Optional[SafetyStatus]:
    if ctx.fence is None or ctx.fence.is_inside:
        return None
    message = "Outside authorized safe zone"
    if ctx.fence.nearest_fence is not None:
        nearest = ctx.fence.nearest_fence
        message = f"{message} ({round(nearest.distance_m)}m from {nearest.name})"
    return SafetyStatus(StatusLevel.CRITICAL, message, ctx.hours_since_check_in)


def _check_in_recency(ctx: ResolverInput) -> Optional[SafetyStatus]:
    if ctx.hours_since_check_in is None:
        return None
    hours = ctx.hours_since_check_in
    if hours > ctx.thresholds.critical_after_hours:
        return SafetyStatus(
            StatusLevel.CRITICAL,
            f"No check-in for {int(hours)} hours - emergency check-in required",
            hours,
        )
    if hours > ctx.thresholds.warning_after_hours:
        return SafetyStatus(StatusLevel.WARNING, f"No check-in for {int(hours)} hours", hours)
    return SafetyStatus(StatusLevel.SAFE, "All systems normal", hours)


def _location_only(ctx: ResolverInput) -> Optional[SafetyStatus]:
    return SafetyStatus(
        StatusLevel.SAFE,
        "Location confirmed, no check-in on record",
        ctx.hours_since_check_in,
    )


RULES: Tuple[StatusRule, ...] = (
    StatusRule(RuleTag.NO_DATA, _no_data),
    StatusRule(RuleTag.OUTSIDE_FENCE, _outside_fence),
    StatusRule(RuleTag.CHECK_IN_RECENCY, _check_in_recency),
    StatusRule(RuleTag.LOCATION_ONLY, _location_only),
)


def resolve_with_rule(
    latest: Optional[LocationSnapshot],
    last_check_in: Optional[CheckIn],
    fence: Optional[GeoFenceStatus],
    now: Optional[datetime] = None,
    thresholds: Optional[Thresholds] = None,
) -> Tuple[SafetyStatus, RuleTag]:
    """
    Resolve a status and report which rule produced it.

    Args:
        latest: Newest location snapshot, if any.
        last_check_in: Most recent explicit check-in, if any.
        fence: Geo-fence membership from upstream, if any.
        now: Evaluation instant (defaults to current UTC time).
        thresholds: Recency thresholds (defaults to settings).

    Returns:
        (SafetyStatus, RuleTag of the firing rule)
    """
    now = now or utc_now()
    hours = None
    if last_check_in is not None:
        # Clock skew can put a check-in slightly in the future; clamp to 0
        hours = hours_between(last_check_in.timestamp, now)

    ctx = ResolverInput(
        latest=latest,
        last_check_in=last_check_in,
        fence=fence,
        hours_since_check_in=hours,
        thresholds=thresholds or Thresholds.from_settings(),
    )
    for rule in RULES:
        status = rule.evaluate(ctx)
        if status is not None:
            return status, rule.tag

    # _location_only always matches
    raise AssertionError("status rule list is not exhaustive")


def resolve(
    latest: Optional[LocationSnapshot],
    last_check_in: Optional[CheckIn],
    fence: Optional[GeoFenceStatus],
    now: Optional[datetime] = None,
    thresholds: Optional[Thresholds] = None,
) -> SafetyStatus:
    """Resolve the current SafetyStatus. See module docstring for the policy."""
    status, _ = resolve_with_rule(latest, last_check_in, fence, now, thresholds)
    return status
