"""
Safety monitor - keeps the family and map views of watched workers fresh.

Each watched subject gets a SubjectWatcher with two independent polling
controllers:

    family view - status + last check-in + recent history, every 60s
    map view    - current location + history window + geo-fence, every 30s

A tick fetches the upstream payload, parses it, aggregates the history and
resolves a SafetyStatus into an immutable view. Views are replaced
wholesale. When a fetch fails the last good view is kept, marked stale,
and the error is exposed as a banner message.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Optional

import structlog

from app.config import get_settings
from app.exceptions import NotFoundError, SafetyError, ValidationError
from app.models import (
    AggregateStats,
    CheckIn,
    GeoFenceStatus,
    LocationSnapshot,
    SafetyStatus,
)
from app.services.history_aggregator import aggregate, sort_history, window_label
from app.services.polling import PollingController
from app.services.safety_client import SafetyApiClient
from app.services.snapshot_parser import (
    parse_check_in,
    parse_geofence_status,
    parse_history,
    parse_snapshot,
)
from app.services.status_resolver import RuleTag, resolve_with_rule
from app.utils.timezone import utc_now

logger = structlog.get_logger(__name__)

# Period label for the family endpoint, which is bounded by count, not days
RECENT_PERIOD = "recent"


# =============================================================================
# Views
# =============================================================================

@dataclass(frozen=True)
class FamilyStatusView:
    """What the family portal shows for one worker."""
    subject_id: str
    status: SafetyStatus
    rule: RuleTag
    last_check_in: Optional[CheckIn]
    location: Optional[LocationSnapshot]
    history: tuple[LocationSnapshot, ...]
    stats: AggregateStats
    fetched_at: datetime


@dataclass(frozen=True)
class LocationMapView:
    """What the map view shows for one worker."""
    subject_id: str
    status: SafetyStatus
    rule: RuleTag
    current_location: Optional[LocationSnapshot]
    history: tuple[LocationSnapshot, ...]
    geofence: Optional[GeoFenceStatus]
    stats: AggregateStats
    fetched_at: datetime


@dataclass(frozen=True)
class WatchState:
    """
    Last known view plus freshness.

    `stale` is set when the most recent fetch failed; `error` carries the
    banner text. A successful fetch clears both.
    """
    view: Optional[Any] = None
    stale: bool = False
    error: Optional[str] = None
    last_attempt_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None


# =============================================================================
# View builders
# =============================================================================

def _optional_snapshot(raw: Any, subject_id: str, field: str) -> Optional[LocationSnapshot]:
    if not raw:
        return None
    try:
        return parse_snapshot(raw)
    except ValidationError as e:
        logger.warning("Ignoring invalid location", subject_id=subject_id, field=field, error=str(e))
        return None


def _optional_check_in(raw: Any, subject_id: str) -> Optional[CheckIn]:
    if not isinstance(raw, dict):
        return None
    try:
        return parse_check_in(raw)
    except ValidationError as e:
        logger.warning("Ignoring invalid check-in", subject_id=subject_id, error=str(e))
        return None


def build_family_view(
    subject_id: str,
    payload: dict[str, Any],
    now: Optional[datetime] = None,
) -> FamilyStatusView:
    """Build the family view from a `/safety/family/{id}/status` payload."""
    now = now or utc_now()
    history, skipped = parse_history(payload.get("locationHistory"))
    ordered = sort_history(history)
    location = _optional_snapshot(payload.get("location"), subject_id, "location")
    latest = location or (ordered[0] if ordered else None)
    last_check_in = _optional_check_in(payload.get("lastCheckIn"), subject_id)

    status, rule = resolve_with_rule(latest, last_check_in, None, now)
    return FamilyStatusView(
        subject_id=subject_id,
        status=status,
        rule=rule,
        last_check_in=last_check_in,
        location=latest,
        history=tuple(ordered),
        stats=aggregate(ordered, RECENT_PERIOD, skipped_records=skipped),
        fetched_at=now,
    )


def build_map_view(
    subject_id: str,
    payload: dict[str, Any],
    days: int = 1,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LocationMapView:
    """Build the map view from a `/safety/worker/{id}/location` payload."""
    now = now or utc_now()
    history, skipped = parse_history(payload.get("locationHistory"))
    ordered = sort_history(history)
    if limit is not None:
        ordered = ordered[:limit]
    current = _optional_snapshot(payload.get("currentLocation"), subject_id, "currentLocation")
    latest = current or (ordered[0] if ordered else None)
    geofence = parse_geofence_status(payload.get("geoFenceStatus"))

    status, rule = resolve_with_rule(latest, None, geofence, now)
    return LocationMapView(
        subject_id=subject_id,
        status=status,
        rule=rule,
        current_location=latest,
        history=tuple(ordered),
        geofence=geofence,
        stats=aggregate(ordered, window_label(days), skipped_records=skipped),
        fetched_at=now,
    )


def empty_family_view(subject_id: str, now: Optional[datetime] = None) -> FamilyStatusView:
    """View for a subject the upstream knows nothing about."""
    return build_family_view(subject_id, {}, now)


def empty_map_view(subject_id: str, days: int = 1, now: Optional[datetime] = None) -> LocationMapView:
    return build_map_view(subject_id, {}, days=days, now=now)


# =============================================================================
# One-shot fetches
# =============================================================================

async def fetch_family_view(
    client: SafetyApiClient,
    subject_id: str,
    now: Optional[datetime] = None,
) -> FamilyStatusView:
    """Fetch and build the family view; unknown subjects resolve to `unknown`."""
    try:
        payload = await client.fetch_family_status(subject_id)
    except NotFoundError:
        logger.info("No safety data for subject", subject_id=subject_id, view="family")
        return empty_family_view(subject_id, now)
    return build_family_view(subject_id, payload, now)


async def fetch_map_view(
    client: SafetyApiClient,
    subject_id: str,
    now: Optional[datetime] = None,
) -> LocationMapView:
    """Fetch and build the map view; unknown subjects resolve to `unknown`."""
    settings = get_settings()
    days = settings.history_days
    try:
        payload = await client.fetch_worker_location(subject_id, days=days)
    except NotFoundError:
        logger.info("No safety data for subject", subject_id=subject_id, view="map")
        return empty_map_view(subject_id, days=days, now=now)
    return build_map_view(subject_id, payload, days=days, limit=settings.history_limit, now=now)


# =============================================================================
# Watchers
# =============================================================================

class SubjectWatcher:
    """
    Polls the family and map views of one subject.

    The two controllers have different cadences and never share state.
    `clock` stamps every fetch and defaults to the wall clock.
    """

    def __init__(
        self,
        client: SafetyApiClient,
        family_interval: Optional[float] = None,
        map_interval: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        settings = get_settings()
        self.client = client
        self.clock = clock or utc_now
        self.family_interval = family_interval or settings.family_poll_interval_seconds
        self.map_interval = map_interval or settings.map_poll_interval_seconds
        self.family_poller = PollingController("family")
        self.map_poller = PollingController("map")
        self.family_state = WatchState()
        self.map_state = WatchState()
        self._subject_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"<SubjectWatcher {self._subject_id or '-'}>"

    @property
    def subject_id(self) -> Optional[str]:
        return self._subject_id

    @property
    def is_running(self) -> bool:
        return self.family_poller.is_running or self.map_poller.is_running

    async def watch(self, subject_id: str) -> None:
        """
        Start (or retarget) polling. Switching subjects drops the old views
        so nothing from the previous worker is ever shown for the new one.
        """
        if subject_id == self._subject_id and self.is_running:
            return

        await self.stop()
        self._subject_id = subject_id
        self.family_state = WatchState()
        self.map_state = WatchState()

        await self.family_poller.start(
            subject_id,
            self.family_interval,
            self._family_tick,
            on_result=self._publish_family,
            on_error=self._family_failed,
        )
        await self.map_poller.start(
            subject_id,
            self.map_interval,
            self._map_tick,
            on_result=self._publish_map,
            on_error=self._map_failed,
        )

    async def stop(self) -> None:
        """Stop both pollers. Idempotent."""
        await self.family_poller.stop()
        await self.map_poller.stop()

    def refresh_now(self) -> None:
        """Manual refresh of both views."""
        self.family_poller.refresh_now()
        self.map_poller.refresh_now()

    async def _family_tick(self, subject_id: str) -> FamilyStatusView:
        now = self.clock()
        self.family_state = replace(self.family_state, last_attempt_at=now)
        return await fetch_family_view(self.client, subject_id, now)

    async def _map_tick(self, subject_id: str) -> LocationMapView:
        now = self.clock()
        self.map_state = replace(self.map_state, last_attempt_at=now)
        return await fetch_map_view(self.client, subject_id, now)

    def _publish_family(self, subject_id: str, view: FamilyStatusView) -> None:
        self.family_state = _succeeded(self.family_state, view)

    def _publish_map(self, subject_id: str, view: LocationMapView) -> None:
        self.map_state = _succeeded(self.map_state, view)

    def _family_failed(self, subject_id: str, error: BaseException) -> None:
        self.family_state = _failed(self.family_state, error)

    def _map_failed(self, subject_id: str, error: BaseException) -> None:
        self.map_state = _failed(self.map_state, error)


def _succeeded(state: WatchState, view: Any) -> WatchState:
    return WatchState(
        view=view,
        stale=False,
        error=None,
        last_attempt_at=state.last_attempt_at,
        last_success_at=view.fetched_at,
    )


def _failed(state: WatchState, error: BaseException) -> WatchState:
    if isinstance(error, SafetyError):
        banner = f"Unable to refresh safety data: {error}"
    else:
        banner = "Unable to refresh safety data"
    return replace(state, stale=state.view is not None, error=banner)


class WatchRegistry:
    """
    All subjects currently being watched, keyed by subject id.

    Owned by the application lifespan; `shutdown()` stops every poller.
    """

    def __init__(self, client: SafetyApiClient):
        self.client = client
        self._watchers: dict[str, SubjectWatcher] = {}

    def __contains__(self, subject_id: str) -> bool:
        return subject_id in self._watchers

    def __len__(self) -> int:
        return len(self._watchers)

    def get(self, subject_id: str) -> Optional[SubjectWatcher]:
        return self._watchers.get(subject_id)

    def watchers(self) -> list[SubjectWatcher]:
        return list(self._watchers.values())

    async def watch(self, subject_id: str) -> SubjectWatcher:
        """Start watching a subject (no-op if already watched)."""
        watcher = self._watchers.get(subject_id)
        if watcher is None:
            watcher = SubjectWatcher(self.client)
            self._watchers[subject_id] = watcher
        await watcher.watch(subject_id)
        return watcher

    async def retarget(self, old_subject_id: str, new_subject_id: str) -> SubjectWatcher:
        """
        Point an existing watcher at another subject.

        Raises:
            KeyError: If `old_subject_id` is not watched.
        """
        watcher = self._watchers[old_subject_id]
        if new_subject_id == old_subject_id:
            return watcher
        if new_subject_id in self._watchers:
            # Already watched elsewhere; just drop the old one
            await self.unwatch(old_subject_id)
            return self._watchers[new_subject_id]

        del self._watchers[old_subject_id]
        await watcher.watch(new_subject_id)
        self._watchers[new_subject_id] = watcher
        logger.info("Watcher retargeted", old_subject_id=old_subject_id, new_subject_id=new_subject_id)
        return watcher

    async def unwatch(self, subject_id: str) -> bool:
        """Stop watching a subject. Returns False if it was not watched."""
        watcher = self._watchers.pop(subject_id, None)
        if watcher is None:
            return False
        await watcher.stop()
        return True

    async def shutdown(self) -> None:
        """Stop all watchers."""
        for subject_id in list(self._watchers):
            await self.unwatch(subject_id)
