"""Tests for history aggregation."""

import random

import pytest

from app.services.history_aggregator import aggregate, sort_history, window_label

VIOLATION_TAGS = ["geofence_violation", "geofence_exit"]


class TestAggregate:
    """Test AggregateStats computation."""

    def test_empty_history(self):
        stats = aggregate([], "24h", violation_event_types=VIOLATION_TAGS)

        assert stats.total_updates == 0
        assert stats.avg_accuracy is None
        assert stats.active_violations == 0
        assert stats.period == "24h"

    def test_counts_and_average(self, make_snapshot):
        history = [
            make_snapshot(minutes_ago=10, accuracy=10.0),
            make_snapshot(minutes_ago=20, accuracy=20.0),
            make_snapshot(minutes_ago=30, accuracy=None),
            make_snapshot(minutes_ago=40, accuracy=30.0, event_type="geofence_exit"),
        ]

        stats = aggregate(history, "24h", violation_event_types=VIOLATION_TAGS)

        assert stats.total_updates == 4
        assert stats.avg_accuracy == pytest.approx(20.0)
        assert stats.active_violations == 1

    def test_average_not_available_when_no_accuracy(self, make_snapshot):
        history = [make_snapshot(minutes_ago=i, accuracy=None) for i in range(3)]

        stats = aggregate(history, "24h", violation_event_types=VIOLATION_TAGS)

        assert stats.total_updates == 3
        assert stats.avg_accuracy is None

    def test_zero_accuracy_is_a_real_value(self, make_snapshot):
        stats = aggregate(
            [make_snapshot(accuracy=0.0), make_snapshot(minutes_ago=1, accuracy=None)],
            "24h",
            violation_event_types=VIOLATION_TAGS,
        )

        assert stats.avg_accuracy == 0.0

    def test_violation_tags_case_insensitive(self, make_snapshot):
        history = [
            make_snapshot(event_type="GEOFENCE_VIOLATION"),
            make_snapshot(minutes_ago=1, event_type="alert"),
            make_snapshot(minutes_ago=2, event_type=None),
        ]

        stats = aggregate(history, "24h", violation_event_types=VIOLATION_TAGS)

        assert stats.active_violations == 1

    def test_uses_configured_violation_tags_by_default(self, make_snapshot):
        stats = aggregate([make_snapshot(event_type="geofence_exit")], "24h")

        assert stats.active_violations == 1

    def test_order_invariant(self, make_snapshot):
        history = [
            make_snapshot(minutes_ago=i * 7, accuracy=(i * 3.3) if i % 3 else None,
                          event_type="geofence_violation" if i % 4 == 0 else "routine")
            for i in range(25)
        ]
        expected = aggregate(history, "24h", violation_event_types=VIOLATION_TAGS)

        rng = random.Random(42)
        for _ in range(10):
            shuffled = history[:]
            rng.shuffle(shuffled)
            assert aggregate(shuffled, "24h", violation_event_types=VIOLATION_TAGS) == expected

    def test_limit_keeps_newest(self, make_snapshot):
        history = [
            make_snapshot(minutes_ago=60, accuracy=100.0),
            make_snapshot(minutes_ago=1, accuracy=10.0),
            make_snapshot(minutes_ago=5, accuracy=20.0),
        ]

        stats = aggregate(history, "24h", limit=2, violation_event_types=VIOLATION_TAGS)

        assert stats.total_updates == 2
        assert stats.avg_accuracy == pytest.approx(15.0)

    def test_limit_tie_ignores_input_order(self, make_snapshot):
        history = [
            make_snapshot(minutes_ago=0, event_type="geofence_violation"),
            make_snapshot(minutes_ago=0, event_type="routine"),
            make_snapshot(minutes_ago=30, event_type="routine"),
        ]

        forward = aggregate(history, "24h", limit=1, violation_event_types=VIOLATION_TAGS)
        backward = aggregate(history[::-1], "24h", limit=1, violation_event_types=VIOLATION_TAGS)

        assert forward == backward

    def test_skipped_records_carried(self):
        stats = aggregate([], "24h", violation_event_types=VIOLATION_TAGS, skipped_records=3)

        assert stats.skipped_records == 3


class TestSortHistory:
    def test_newest_first(self, make_snapshot):
        history = [make_snapshot(minutes_ago=m) for m in (30, 5, 60, 10)]

        ordered = sort_history(history)

        assert [s.timestamp for s in ordered] == sorted((s.timestamp for s in history), reverse=True)
        # Input untouched
        assert history[0].timestamp != ordered[0].timestamp


class TestWindowLabel:
    def test_labels(self):
        assert window_label(1) == "24h"
        assert window_label(7) == "7d"
