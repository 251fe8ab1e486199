"""Tests for timeout statistics and report derivation."""

from datetime import UTC, datetime

import pytest

from stopwatch.analysis.statistics import (
    TYPE_BREAKDOWN_THRESHOLD,
    average_per_day,
    derive_report,
    parse_timestamp,
    type_frequency,
)
from stopwatch.analysis.tree import build_tree
from stopwatch.core.exceptions import UndefinedStatisticError
from tests.factories import make_entry


class TestParseTimestamp:
    """Test suite for timestamp parsing."""

    def test_zulu_suffix(self):
        """Trailing Z should parse as UTC."""
        assert parse_timestamp("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, tzinfo=UTC)

    def test_offset_is_converted_to_utc(self):
        """Offsets should be normalized to UTC."""
        assert parse_timestamp("2024-01-01T23:30:00-02:00").date().isoformat() == "2024-01-02"

    def test_naive_is_treated_as_utc(self):
        """Timestamps without a zone are assumed UTC."""
        assert parse_timestamp("2024-01-01T10:00:00").tzinfo == UTC


class TestAveragePerDay:
    """Test suite for average_per_day()."""

    def test_divides_total_by_days(self):
        """Average should be total / days."""
        assert average_per_day(3, 2) == 1.5

    def test_zero_day_span_is_undefined(self):
        """A zero-day span has no defined average."""
        with pytest.raises(UndefinedStatisticError):
            average_per_day(3, 0)


class TestDeriveReport:
    """Test suite for derive_report()."""

    def test_statistics_example(self):
        """Three entries over three calendar days give the documented stats."""
        # Given
        entries = [
            make_entry(start_time="2024-01-03T08:00:00Z"),
            make_entry(start_time="2024-01-01T10:00:00Z"),
            make_entry(start_time="2024-01-01T12:00:00Z"),
        ]

        # When
        report = derive_report(entries)

        # Then
        assert report.daily_frequency == {"2024-01-01": 2, "2024-01-03": 1}
        assert report.stats.total_timeouts == 3
        assert report.stats.max_per_day == 2
        assert report.stats.days_covered == 2
        assert report.stats.average_per_day == 1.5

    def test_entries_are_sorted_and_input_untouched(self):
        """Entries are sorted by start time without reordering the input."""
        entries = [
            make_entry(start_time="2024-01-02T00:00:00Z", job_id="b"),
            make_entry(start_time="2024-01-01T00:00:00Z", job_id="a"),
        ]

        report = derive_report(entries)

        assert [e.job_id for e in report.sorted_entries] == ["a", "b"]
        assert [e.job_id for e in entries] == ["b", "a"]

    def test_cumulative_points_are_one_indexed(self):
        """Cumulative series counts from 1 at each entry's timestamp."""
        entries = [
            make_entry(start_time="2024-01-01T10:00:00Z"),
            make_entry(start_time="2024-01-01T11:00:00Z"),
        ]

        report = derive_report(entries)

        assert [(p.x, p.y) for p in report.cumulative_points] == [
            ("2024-01-01T10:00:00Z", 1),
            ("2024-01-01T11:00:00Z", 2),
        ]

    def test_empty_entries(self):
        """No entries give empty series and no stats."""
        report = derive_report([])

        assert report.stats is None
        assert report.cumulative_points == []
        assert report.daily_frequency == {}
        assert report.to_dict()["stats"] is None

    def test_single_day_span_has_no_average(self):
        """All entries at one instant cover zero days; average is None."""
        entries = [make_entry(start_time="2024-01-01T10:00:00Z") for _ in range(2)]

        report = derive_report(entries)

        assert report.stats.days_covered == 0
        assert report.stats.average_per_day is None
        assert report.stats.max_per_day == 2

    def test_days_covered_rounds_half_up(self):
        """A span of exactly 1.5 days rounds to 2."""
        entries = [
            make_entry(start_time="2024-01-01T00:00:00Z"),
            make_entry(start_time="2024-01-02T12:00:00Z"),
        ]

        assert derive_report(entries).stats.days_covered == 2

    def test_top_heads_come_from_tree(self):
        """Heads are ranked by tree count when a tree is given."""
        entries = [make_entry(processed=["A"])] + [make_entry(processed=["B"])] * 2

        report = derive_report(entries, build_tree(entries))

        assert report.top_heads == [("B", 2), ("A", 1)]
        assert report.to_dict()["top_heads"][0] == {"head": "B", "count": 2}

    def test_report_serializes_stats(self):
        """to_dict should expose stats with ISO dates."""
        report = derive_report([make_entry(start_time="2024-01-01T10:00:00Z")])

        data = report.to_dict()

        assert data["stats"]["start_date"] == "2024-01-01T10:00:00+00:00"
        assert data["frequency_points"] == [{"x": "2024-01-01", "y": 1}]
        assert data["type_threshold"] == TYPE_BREAKDOWN_THRESHOLD


class TestTypeBreakdown:
    """Test suite for the per-type breakdown threshold."""

    def test_head_below_threshold_is_excluded(self):
        """Nine occurrences stay out of the breakdown."""
        entries = [make_entry(processed=["Timeout"]) for _ in range(9)]

        report = derive_report(entries)

        assert report.type_breakdown == {}
        assert report.type_frequency_points == []

    def test_head_at_threshold_is_included(self):
        """Ten occurrences get their own series."""
        entries = [make_entry(processed=["Timeout"]) for _ in range(10)]

        report = derive_report(entries)

        assert report.type_breakdown == {"Timeout": 10}
        assert report.type_frequency_points[0].type == "Timeout"

    def test_series_sorted_by_total(self):
        """The most frequent head comes first."""
        entries = [make_entry(processed=["A"])] * 2 + [make_entry(processed=["B"])] * 3

        series = type_frequency(entries, threshold=1)

        assert [s.type for s in series] == ["B", "A"]
        assert [s.total for s in series] == [3, 2]

    def test_series_count_per_day(self):
        """Each series is a daily histogram of its head."""
        entries = [
            make_entry(processed=["A"], start_time="2024-01-01T01:00:00Z"),
            make_entry(processed=["A"], start_time="2024-01-01T02:00:00Z"),
            make_entry(processed=["A"], start_time="2024-01-02T01:00:00Z"),
        ]

        series = type_frequency(entries, threshold=1)

        assert series[0].to_dict() == {
            "type": "A",
            "data": [{"x": "2024-01-01", "y": 2}, {"x": "2024-01-02", "y": 1}],
        }

    def test_custom_threshold(self):
        """The threshold can be lowered per report."""
        entries = [make_entry(processed=["Timeout"]) for _ in range(3)]

        report = derive_report(entries, type_threshold=3)

        assert report.type_breakdown == {"Timeout": 3}
