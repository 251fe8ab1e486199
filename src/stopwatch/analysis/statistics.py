"""Statistics and report derivation over timeout entries.

A pure, read-only fold: entries in, a serializable ``TimeoutReport`` out.
Rendering the report (terminal tables, charts) happens elsewhere.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from stopwatch.core.exceptions import UndefinedStatisticError
from stopwatch.core.models import TimeoutEntry, TreeNode

# Heads seen fewer times than this are left out of the per-type breakdown.
TYPE_BREAKDOWN_THRESHOLD = 10

_ONE_DAY = timedelta(days=1)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into a UTC-aware datetime.

    Naive timestamps are treated as UTC.
    """
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def utc_date_key(value: str) -> str:
    """Calendar date (UTC) of a timestamp, as ``YYYY-MM-DD``."""
    return parse_timestamp(value).date().isoformat()


def average_per_day(total: int, days_covered: int) -> float:
    """Average entries per day.

    Raises:
        UndefinedStatisticError: If ``days_covered`` is zero.
    """
    if days_covered == 0:
        raise UndefinedStatisticError("average per day is undefined for a zero-day span")
    return total / days_covered


@dataclass(frozen=True)
class DataPoint:
    """Chart point: x is a timestamp or date, y a count."""

    x: str
    y: int

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}


@dataclass
class TypeFrequencySeries:
    """Daily histogram of one classification head."""

    type: str
    data: list[DataPoint] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(point.y for point in self.data)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": [point.to_dict() for point in self.data]}


@dataclass
class ReportStats:
    """Summary statistics over the date range of the entries."""

    total_timeouts: int
    start_date: datetime
    end_date: datetime
    days_covered: int
    average_per_day: float | None  # None when days_covered is 0
    max_per_day: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_timeouts": self.total_timeouts,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days_covered": self.days_covered,
            "average_per_day": self.average_per_day,
            "max_per_day": self.max_per_day,
        }


@dataclass
class TimeoutReport:
    """Everything needed to present timeout trends."""

    sorted_entries: list[TimeoutEntry] = field(default_factory=list)
    cumulative_points: list[DataPoint] = field(default_factory=list)
    daily_frequency: dict[str, int] = field(default_factory=dict)
    type_frequency_points: list[TypeFrequencySeries] = field(default_factory=list)
    type_breakdown: dict[str, int] = field(default_factory=dict)
    top_heads: list[tuple[str, int]] = field(default_factory=list)
    stats: ReportStats | None = None
    type_threshold: int = TYPE_BREAKDOWN_THRESHOLD

    @property
    def frequency_points(self) -> list[DataPoint]:
        return [DataPoint(x=day, y=count) for day, count in self.daily_frequency.items()]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dictionary (entries are not repeated)."""
        return {
            "cumulative_points": [point.to_dict() for point in self.cumulative_points],
            "frequency_points": [point.to_dict() for point in self.frequency_points],
            "type_frequency_points": [series.to_dict() for series in self.type_frequency_points],
            "type_breakdown": dict(self.type_breakdown),
            "top_heads": [{"head": head, "count": count} for head, count in self.top_heads],
            "type_threshold": self.type_threshold,
            "stats": self.stats.to_dict() if self.stats else None,
        }


def sort_entries(entries: list[TimeoutEntry]) -> list[TimeoutEntry]:
    """Entries ascending by start time (stable for equal timestamps)."""
    return sorted(entries, key=lambda entry: parse_timestamp(entry.start_time))


def cumulative_points(sorted_entries: list[TimeoutEntry]) -> list[DataPoint]:
    """Running total, 1-indexed, one point per entry."""
    return [
        DataPoint(x=entry.start_time, y=index)
        for index, entry in enumerate(sorted_entries, start=1)
    ]


def daily_frequency(sorted_entries: list[TimeoutEntry]) -> dict[str, int]:
    """Count of entries per UTC calendar date, in chronological order."""
    counts: dict[str, int] = {}
    for entry in sorted_entries:
        day = utc_date_key(entry.start_time)
        counts[day] = counts.get(day, 0) + 1
    return counts


def type_frequency(
    sorted_entries: list[TimeoutEntry],
    threshold: int = TYPE_BREAKDOWN_THRESHOLD,
) -> list[TypeFrequencySeries]:
    """Daily histograms per classification head with at least ``threshold`` entries.

    Series are ordered by total count, most frequent first.
    """
    head_counts = Counter(entry.head for entry in sorted_entries if entry.head is not None)
    included = {head for head, count in head_counts.items() if count >= threshold}

    per_head: dict[str, dict[str, int]] = {}
    for entry in sorted_entries:
        if entry.head not in included:
            continue
        days = per_head.setdefault(entry.head, {})
        day = utc_date_key(entry.start_time)
        days[day] = days.get(day, 0) + 1

    series = [
        TypeFrequencySeries(
            type=head,
            data=[DataPoint(x=day, y=count) for day, count in days.items()],
        )
        for head, days in per_head.items()
    ]
    series.sort(key=lambda s: s.total, reverse=True)
    return series


def compute_stats(sorted_entries: list[TimeoutEntry], daily: dict[str, int]) -> ReportStats | None:
    """Summary statistics; None for an empty entry set."""
    if not sorted_entries:
        return None

    start = parse_timestamp(sorted_entries[0].start_time)
    end = parse_timestamp(sorted_entries[-1].start_time)
    # Half-up rounding of the span in days
    days_covered = math.floor((end - start) / _ONE_DAY + 0.5)
    total = len(sorted_entries)

    return ReportStats(
        total_timeouts=total,
        start_date=start,
        end_date=end,
        days_covered=days_covered,
        average_per_day=average_per_day(total, days_covered) if days_covered else None,
        max_per_day=max(daily.values()),
    )


def derive_report(
    entries: list[TimeoutEntry],
    tree: dict[str, TreeNode] | None = None,
    type_threshold: int = TYPE_BREAKDOWN_THRESHOLD,
) -> TimeoutReport:
    """Derive the full timeout report.

    Args:
        entries: All timeout entries of a snapshot (not modified).
        tree: Optional frequency tree; supplies ``top_heads``.
        type_threshold: Minimum head count for the per-type breakdown.

    Returns:
        TimeoutReport ready for serialization or display.
    """
    ordered = sort_entries(entries)
    daily = daily_frequency(ordered)
    series = type_frequency(ordered, type_threshold)

    top_heads: list[tuple[str, int]] = []
    if tree:
        top_heads = sorted(
            ((head, node.count) for head, node in tree.items()),
            key=lambda item: item[1],
            reverse=True,
        )

    return TimeoutReport(
        sorted_entries=ordered,
        cumulative_points=cumulative_points(ordered),
        daily_frequency=daily,
        type_frequency_points=series,
        type_breakdown={s.type: s.total for s in series},
        top_heads=top_heads,
        stats=compute_stats(ordered, daily),
        type_threshold=type_threshold,
    )
