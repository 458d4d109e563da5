"""Tests for snapshot parsing and validation."""

from datetime import datetime, timezone

import pytest

from app.exceptions import InvalidCoordinate, MalformedTimestamp, ValidationError
from app.services.snapshot_parser import (
    parse_check_in,
    parse_geofence_status,
    parse_history,
    parse_snapshot,
    parse_timestamp,
)

TS = "2026-03-01T10:00:00.000Z"


class TestParseSnapshot:
    """Test single record validation."""

    @pytest.mark.parametrize(
        "latitude,longitude",
        [(0, 0), (90, 180), (-90, -180), (32.0853, 34.7818), ("31.7683", "35.2137")],
    )
    def test_valid_coordinates(self, latitude, longitude):
        snapshot = parse_snapshot({"latitude": latitude, "longitude": longitude, "timestamp": TS})

        assert snapshot.latitude == float(latitude)
        assert snapshot.longitude == float(longitude)
        assert snapshot.timestamp == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "raw",
        [
            {"latitude": 90.5, "longitude": 0},
            {"latitude": -91, "longitude": 0},
            {"latitude": 0, "longitude": 180.01},
            {"latitude": 0, "longitude": -200},
            {"longitude": 34.7},
            {"latitude": 32.0},
            {},
            {"latitude": None, "longitude": None},
            {"latitude": "north", "longitude": 34.7},
            {"latitude": float("nan"), "longitude": 34.7},
            {"latitude": True, "longitude": 34.7},
        ],
    )
    def test_invalid_coordinates(self, raw):
        with pytest.raises(InvalidCoordinate):
            parse_snapshot({**raw, "timestamp": TS})

    def test_invalid_coordinate_is_validation_error(self):
        with pytest.raises(ValidationError):
            parse_snapshot({"timestamp": TS})

    @pytest.mark.parametrize("timestamp", [None, "", "yesterday", "2026-13-45T99:00:00", [2026]])
    def test_malformed_timestamp(self, timestamp):
        with pytest.raises(MalformedTimestamp):
            parse_snapshot({"latitude": 1, "longitude": 1, "timestamp": timestamp})

    def test_optional_fields(self):
        snapshot = parse_snapshot({
            "latitude": 32.08,
            "longitude": 34.78,
            "timestamp": TS,
            "accuracy": "15.5",
            "address": " Rothschild Boulevard 1 ",
            "city": "Tel Aviv",
            "country": "",
            "eventType": "checkin",
        })

        assert snapshot.accuracy == 15.5
        assert snapshot.address == "Rothschild Boulevard 1"
        assert snapshot.city == "Tel Aviv"
        assert snapshot.country is None
        assert snapshot.event_type == "checkin"

    def test_missing_accuracy_stays_none(self):
        snapshot = parse_snapshot({"latitude": 1, "longitude": 1, "timestamp": TS})

        assert snapshot.accuracy is None
        assert not snapshot.has_accuracy

    def test_negative_accuracy_rejected(self):
        with pytest.raises(ValidationError):
            parse_snapshot({"latitude": 1, "longitude": 1, "timestamp": TS, "accuracy": -3})

    @pytest.mark.parametrize("accuracy", [float("inf"), float("-inf"), float("nan"), "1e400"])
    def test_non_finite_accuracy_rejected(self, accuracy):
        with pytest.raises(ValidationError):
            parse_snapshot({"latitude": 1, "longitude": 1, "timestamp": TS, "accuracy": accuracy})

    def test_short_field_names(self):
        snapshot = parse_snapshot({"lat": 32.1, "lng": 34.8, "timestamp": TS})

        assert (snapshot.latitude, snapshot.longitude) == (32.1, 34.8)

    def test_nested_check_in_location(self):
        snapshot = parse_snapshot({
            "latitude": 1,
            "longitude": 1,
            "timestamp": TS,
            "location": {"address": "Jaffa Road", "city": "Jerusalem", "country": "Israel"},
        })

        assert snapshot.address == "Jaffa Road"
        assert snapshot.city == "Jerusalem"

    def test_snapshot_is_immutable(self):
        snapshot = parse_snapshot({"latitude": 1, "longitude": 1, "timestamp": TS})

        with pytest.raises(AttributeError):
            snapshot.latitude = 2

    def test_non_dict_rejected(self):
        with pytest.raises(ValidationError):
            parse_snapshot(["32.0", "34.0"])


class TestParseTimestamp:
    """Test timestamp normalization."""

    def test_offset_converted_to_utc(self):
        parsed = parse_timestamp("2026-03-01T12:00:00+02:00")

        assert parsed == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_naive_string_is_utc(self):
        parsed = parse_timestamp("2026-03-01 10:00:00")

        assert parsed.utcoffset().total_seconds() == 0
        assert parsed.hour == 10

    def test_epoch_seconds_and_milliseconds_agree(self):
        assert parse_timestamp(1772359200) == parse_timestamp(1772359200000)

    @pytest.mark.parametrize("timestamp", ["0001-01-01T00:00:00+05:00", "9999-12-31T23:59:59-05:00"])
    def test_offset_overflowing_utc_is_malformed(self, timestamp):
        with pytest.raises(MalformedTimestamp):
            parse_timestamp(timestamp)

    def test_datetime_passthrough(self):
        dt = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

        assert parse_timestamp(dt) == dt


class TestParseHistory:
    """Test that invalid records are skipped, not fatal."""

    def test_skips_and_counts_invalid(self):
        raws = [
            {"latitude": 1, "longitude": 1, "timestamp": TS},
            {"latitude": 100, "longitude": 1, "timestamp": TS},
            {"latitude": 1, "longitude": 1, "timestamp": "garbage"},
            {"latitude": 2, "longitude": 2, "timestamp": TS},
        ]

        snapshots, skipped = parse_history(raws)

        assert [s.latitude for s in snapshots] == [1.0, 2.0]
        assert skipped == 2

    def test_none_history(self):
        assert parse_history(None) == ([], 0)

    def test_out_of_range_timestamp_skipped(self):
        raws = [
            {"latitude": 1, "longitude": 1, "timestamp": TS},
            {"latitude": 32, "longitude": 34, "timestamp": "0001-01-01T00:00:00+05:00"},
        ]

        snapshots, skipped = parse_history(raws)

        assert len(snapshots) == 1
        assert skipped == 1

    @pytest.mark.parametrize("raws", [5, True, "history", {"latitude": 1}])
    def test_history_that_is_not_a_list(self, raws):
        assert parse_history(raws) == ([], 0)


class TestParseCheckIn:
    """Test check-in parsing."""

    def test_parses_check_in(self):
        check_in = parse_check_in({
            "timestamp": TS,
            "status": "safe",
            "notes": "All good",
            "location": {"address": "Ben Yehuda Street"},
        })

        assert check_in.status == "safe"
        assert check_in.notes == "All good"
        assert check_in.address == "Ben Yehuda Street"

    def test_empty_check_in(self):
        assert parse_check_in(None) is None
        assert parse_check_in({}) is None

    def test_bad_timestamp_raises(self):
        with pytest.raises(MalformedTimestamp):
            parse_check_in({"timestamp": "not a time", "status": "safe"})


class TestParseGeofenceStatus:
    """Test geo-fence status parsing."""

    def test_upstream_shape(self):
        fence = parse_geofence_status({
            "isInside": False,
            "activeFences": 4,
            "nearestFence": {"name": "Work Site - Jaffa Road", "distance": 812.4, "isInside": False},
        })

        assert fence.is_inside is False
        assert fence.active_fence_count == 4
        assert fence.nearest_fence.name == "Work Site - Jaffa Road"
        assert fence.nearest_fence.distance_m == 812.4

    def test_nearest_fence_without_distance_dropped(self):
        fence = parse_geofence_status({"isInside": True, "activeFences": 1, "nearestFence": {"name": "X"}})

        assert fence.nearest_fence is None

    def test_missing_membership(self):
        assert parse_geofence_status(None) is None
        assert parse_geofence_status({"activeFences": 2}) is None
        assert parse_geofence_status(5) is None

    @pytest.mark.parametrize("distance", [float("inf"), float("nan"), "1e400", -5])
    def test_unusable_distance_dropped(self, distance):
        fence = parse_geofence_status({"isInside": False, "nearestFence": {"name": "Site", "distance": distance}})

        assert fence.is_inside is False
        assert fence.nearest_fence is None
