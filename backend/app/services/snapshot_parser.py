"""
Snapshot Parser Service

Turns raw location records from the upstream safety API into validated,
immutable LocationSnapshot objects. This is the only place snapshots are
constructed from untrusted data.

Records that fail validation are rejected one at a time: `parse_history`
skips them and reports how many were dropped, so one bad GPS ping never
blanks a whole history.
"""

import math
from datetime import datetime
from typing import Any, Optional, Tuple

import structlog

from app.exceptions import InvalidCoordinate, MalformedTimestamp, ValidationError
from app.models import CheckIn, GeoFenceStatus, LocationSnapshot, NearestFence
from app.utils.timezone import UTC_TZ, ensure_utc

logger = structlog.get_logger(__name__)

# Epoch numbers above this are milliseconds (10^11 s is the year 5138)
_EPOCH_MS_THRESHOLD = 10**11

# Upstream field aliases (the API mixes camelCase and short names)
_LATITUDE_KEYS = ("latitude", "lat")
_LONGITUDE_KEYS = ("longitude", "lng", "lon")
_EVENT_TYPE_KEYS = ("eventType", "event_type", "type")


def _first_present(raw: dict, keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_coordinate(value: Any, name: str, limit: float) -> float:
    if value is None:
        raise InvalidCoordinate(f"{name} is missing")
    if isinstance(value, bool):
        raise InvalidCoordinate(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(f"{name} must be a number, got {value!r}") from exc
    if math.isnan(number) or not -limit <= number <= limit:
        raise InvalidCoordinate(f"{name} {number} outside [-{limit:g}, {limit:g}]")
    return number


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an upstream timestamp into a timezone-aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (with "Z" or an offset; naive
    strings are taken as UTC) and epoch seconds or milliseconds.

    Raises:
        MalformedTimestamp: If the value cannot be turned into an instant.
    """
    if value is None or value == "":
        raise MalformedTimestamp("timestamp is missing")

    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) > _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=UTC_TZ)
        except (OverflowError, OSError, ValueError) as exc:
            raise MalformedTimestamp(f"epoch value {value!r} out of range") from exc

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except (ValueError, OverflowError) as exc:
            raise MalformedTimestamp(f"cannot parse timestamp {value!r}") from exc

    raise MalformedTimestamp(f"unsupported timestamp type {type(value).__name__}")


def _parse_accuracy(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        accuracy = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"accuracy must be a number, got {value!r}") from exc
    if not math.isfinite(accuracy) or accuracy < 0:
        raise ValidationError(f"accuracy must be a finite number >= 0, got {value!r}")
    return accuracy


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_snapshot(raw: dict) -> LocationSnapshot:
    """
    Validate one raw location record.

    Args:
        raw: Mapping as received from the upstream API.

    Returns:
        An immutable LocationSnapshot.

    Raises:
        InvalidCoordinate: Either coordinate is absent or out of range.
        MalformedTimestamp: The timestamp cannot be parsed.
        ValidationError: Any other field is invalid (e.g. negative accuracy).
    """
    if not isinstance(raw, dict):
        raise ValidationError(f"location record must be an object, got {type(raw).__name__}")

    latitude = _parse_coordinate(_first_present(raw, _LATITUDE_KEYS), "latitude", 90)
    longitude = _parse_coordinate(_first_present(raw, _LONGITUDE_KEYS), "longitude", 180)
    timestamp = parse_timestamp(raw.get("timestamp"))

    # Check-ins nest the address under "location"
    place = raw.get("location") if isinstance(raw.get("location"), dict) else {}

    return LocationSnapshot(
        timestamp=timestamp,
        latitude=latitude,
        longitude=longitude,
        accuracy=_parse_accuracy(raw.get("accuracy")),
        address=_optional_text(raw.get("address") or place.get("address")),
        city=_optional_text(raw.get("city") or place.get("city")),
        country=_optional_text(raw.get("country") or place.get("country")),
        event_type=_optional_text(_first_present(raw, _EVENT_TYPE_KEYS)),
    )


def parse_history(raws: Any) -> Tuple[list[LocationSnapshot], int]:
    """
    Parse a sequence of raw records, skipping invalid ones.

    Returns:
        (snapshots, skipped_count). Snapshots keep the input order; the
        aggregator sorts them.
    """
    snapshots: list[LocationSnapshot] = []
    skipped = 0
    if raws is None:
        return snapshots, skipped
    if not isinstance(raws, (list, tuple)):
        logger.warning("Ignoring location history that is not a list", got=type(raws).__name__)
        return snapshots, skipped

    for raw in raws:
        try:
            snapshots.append(parse_snapshot(raw))
        except ValidationError as e:
            skipped += 1
            logger.debug("Skipping invalid location record", error=str(e))

    if skipped:
        logger.warning("Skipped invalid location records", skipped=skipped, parsed=len(snapshots))
    return snapshots, skipped


def parse_check_in(raw: Optional[dict]) -> Optional[CheckIn]:
    """
    Parse the upstream `lastCheckIn` record.

    Only the timestamp matters for status resolution, so a check-in
    without coordinates is still accepted.

    Raises:
        MalformedTimestamp: If the check-in timestamp is unusable.
    """
    if not raw:
        return None
    place = raw.get("location") if isinstance(raw.get("location"), dict) else {}
    return CheckIn(
        timestamp=parse_timestamp(raw.get("timestamp")),
        status=_optional_text(raw.get("status")) or "safe",
        notes=_optional_text(raw.get("notes")),
        address=_optional_text(place.get("address") or raw.get("address")),
    )


def parse_geofence_status(raw: Optional[dict]) -> Optional[GeoFenceStatus]:
    """
    Parse the upstream `geoFenceStatus` record.

    The upstream reports the fence count as `activeFences`; a nearest
    fence without a usable distance is dropped rather than guessed.
    """
    if not isinstance(raw, dict) or "isInside" not in raw:
        return None

    nearest = None
    raw_nearest = raw.get("nearestFence")
    if isinstance(raw_nearest, dict):
        try:
            distance = float(raw_nearest.get("distance"))
        except (TypeError, ValueError):
            distance = None
        if distance is not None and math.isfinite(distance) and distance >= 0:
            nearest = NearestFence(
                name=_optional_text(raw_nearest.get("name")) or "Unnamed fence",
                distance_m=distance,
            )

    try:
        count = int(raw.get("activeFences", raw.get("activeFenceCount", 0)) or 0)
    except (TypeError, ValueError):
        count = 0

    return GeoFenceStatus(
        is_inside=bool(raw["isInside"]),
        active_fence_count=max(0, count),
        nearest_fence=nearest,
    )
