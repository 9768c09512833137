"""
Commit timeline aggregation.

Turns a flat list of commits into an ordered series of buckets (commit count,
lines added/removed, cumulative lines). The bucket width follows the span of
the *selected* range, so zooming in with the brush can switch from weeks to
days.

Bucket boundaries are real for every granularity:

- day       -> UTC calendar date, key "YYYY-MM-DD"
- week      -> ISO week starting Monday, key is that Monday
- 2weeks    -> fortnights anchored at Monday 1970-01-05, key is the first Monday
- month     -> calendar month, key "YYYY-MM"

Grouping happens once per (dataset, granularity); moving the brush afterwards
only bisects the cached series.
"""

import logging
from bisect import bisect_left, bisect_right
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from .models import Bucket, CommitRecord, CumulativeScope, DateRange, Granularity, to_utc

logger = logging.getLogger(__name__)


# =============================================================================
# GRANULARITY
# =============================================================================

DAY_MAX_SPAN = 90
WEEK_MAX_SPAN = 365
TWO_WEEKS_MAX_SPAN = 730

# Fortnights are counted from this Monday
FORTNIGHT_ANCHOR = date(1970, 1, 5)


def compute_granularity(date_range: DateRange) -> Granularity:
    """Pick the bucket width from the span of the range in whole days."""
    span = date_range.days
    if span <= DAY_MAX_SPAN:
        return Granularity.DAY
    if span <= WEEK_MAX_SPAN:
        return Granularity.WEEK
    if span <= TWO_WEEKS_MAX_SPAN:
        return Granularity.TWO_WEEKS
    return Granularity.MONTH


def _period_day(timestamp: datetime, granularity: Granularity) -> date:
    day = to_utc(timestamp).date()

    if granularity is Granularity.DAY:
        return day
    if granularity is Granularity.MONTH:
        return day.replace(day=1)

    monday = day - timedelta(days=day.weekday())
    if granularity is Granularity.WEEK:
        return monday
    return monday - timedelta(days=(monday - FORTNIGHT_ANCHOR).days % 14)


def period_start(timestamp: datetime, granularity: Granularity) -> datetime:
    """Midnight UTC at the start of the bucket containing `timestamp`."""
    day = _period_day(timestamp, granularity)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def next_period_start(start: datetime, granularity: Granularity) -> datetime:
    """Start of the bucket following the one that begins at `start`."""
    if granularity is Granularity.DAY:
        return start + timedelta(days=1)
    if granularity is Granularity.WEEK:
        return start + timedelta(days=7)
    if granularity is Granularity.TWO_WEEKS:
        return start + timedelta(days=14)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def bucket_key(timestamp: datetime, granularity: Granularity) -> str:
    day = _period_day(timestamp, granularity)
    if granularity is Granularity.MONTH:
        return f"{day.year:04d}-{day.month:02d}"
    return day.isoformat()


# =============================================================================
# AGGREGATION
# =============================================================================

@dataclass(frozen=True)
class WindowTotals:
    """Sums over the buckets currently on screen."""
    commits: int
    lines_added: int
    lines_removed: int

    @property
    def net_lines(self) -> int:
        return self.lines_added - self.lines_removed


def window_totals(buckets: Iterable[Bucket]) -> WindowTotals:
    commits = added = removed = 0
    for bucket in buckets:
        commits += bucket.commit_count
        added += bucket.lines_added
        removed += bucket.lines_removed
    return WindowTotals(commits=commits, lines_added=added, lines_removed=removed)


@dataclass(frozen=True)
class _Series:
    starts: tuple[datetime, ...]
    buckets: tuple[Bucket, ...]


class TimelineAggregator:
    """
    Bucketed view over one loaded dataset.

    Build it once per dataset load; `aggregate()` can then be called on every
    brush move. Records without a timestamp are dropped up front.
    """

    def __init__(self, records: Iterable[CommitRecord]):
        records = tuple(records)
        self._records = tuple(r for r in records if r.timestamp is not None)
        self.skipped = len(records) - len(self._records)
        self._series: dict[Granularity, _Series] = {}

        if self.skipped:
            logger.info(f"Timeline ignores {self.skipped} of {len(records)} commits without a timestamp")

        if self._records:
            timestamps = [r.timestamp for r in self._records]
            self._absolute = DateRange(min(timestamps), max(timestamps))
        else:
            self._absolute = DateRange.now()

        # running (commits, added, removed) over records in time order, for clipping edge buckets
        ordered = sorted(self._records, key=lambda r: r.timestamp)
        self._timestamps = [r.timestamp for r in ordered]
        self._prefix = [(0, 0, 0)]
        for record in ordered:
            count, added, removed = self._prefix[-1]
            self._prefix.append((count + 1, added + record.lines_added, removed + record.lines_removed))

    @property
    def records(self) -> tuple[CommitRecord, ...]:
        return self._records

    @property
    def absolute_range(self) -> DateRange:
        """Earliest to latest commit. Fixed for the lifetime of the dataset."""
        return self._absolute

    @property
    def is_empty(self) -> bool:
        return not self._records

    def series(self, granularity: Granularity) -> tuple[Bucket, ...]:
        """Every bucket of the dataset at `granularity`, cumulative over full history."""
        return self._series_for(granularity).buckets

    def _series_for(self, granularity: Granularity) -> _Series:
        cached = self._series.get(granularity)
        if cached is not None:
            return cached

        groups: dict[datetime, list[int]] = defaultdict(lambda: [0, 0, 0])
        for record in self._records:
            group = groups[period_start(record.timestamp, granularity)]
            group[0] += 1
            group[1] += record.lines_added
            group[2] += record.lines_removed

        buckets = []
        cumulative = 0
        for start in sorted(groups):
            count, added, removed = groups[start]
            cumulative += added - removed
            buckets.append(Bucket(
                key=bucket_key(start, granularity),
                period_start=start,
                commit_count=count,
                lines_added=added,
                lines_removed=removed,
                cumulative_lines=cumulative,
            ))

        series = _Series(starts=tuple(b.period_start for b in buckets), buckets=tuple(buckets))
        self._series[granularity] = series
        return series

    def aggregate(
        self,
        date_range: DateRange,
        cumulative_scope: CumulativeScope | str = CumulativeScope.HISTORY,
    ) -> list[Bucket]:
        """
        Buckets visible in `date_range`, ascending by period start.

        The bucket containing `date_range.start` is kept even when the range
        starts mid-period. The first and last buckets only count commits
        inside the range, so the buckets always sum to the commits in
        `date_range`; with history scope their cumulative value runs up to
        the last commit they count.
        """
        scope = CumulativeScope(cumulative_scope)
        granularity = compute_granularity(date_range)
        series = self._series_for(granularity)

        lower = period_start(date_range.start, granularity)
        lo = bisect_left(series.starts, lower)
        hi = bisect_right(series.starts, date_range.end)
        visible = list(series.buckets[lo:hi])

        edges = {0, len(visible) - 1}
        clipped = []
        for i, bucket in enumerate(visible):
            if i in edges:
                bucket = self._clip(bucket, granularity, date_range)
                if bucket is None:
                    continue
            clipped.append(bucket)
        visible = clipped

        if scope is CumulativeScope.WINDOW:
            running = 0
            for i, bucket in enumerate(visible):
                running += bucket.net_lines
                visible[i] = replace(bucket, cumulative_lines=running)

        return visible

    def _clip(self, bucket: Bucket, granularity: Granularity, date_range: DateRange) -> Bucket | None:
        """`bucket` restricted to commits inside `date_range`; None if none are."""
        lower = max(bucket.period_start, date_range.start)
        upper = next_period_start(bucket.period_start, granularity)

        i = bisect_left(self._timestamps, lower)
        j = min(bisect_right(self._timestamps, date_range.end), bisect_left(self._timestamps, upper))
        if j <= i:
            return None

        count_i, added_i, removed_i = self._prefix[i]
        count_j, added_j, removed_j = self._prefix[j]
        return replace(
            bucket,
            commit_count=count_j - count_i,
            lines_added=added_j - added_i,
            lines_removed=removed_j - removed_i,
            cumulative_lines=added_j - removed_j,
        )


def aggregate(
    records: Iterable[CommitRecord],
    date_range: DateRange,
    cumulative_scope: CumulativeScope | str = CumulativeScope.HISTORY,
) -> list[Bucket]:
    """One-shot aggregation. Use TimelineAggregator when the range changes often."""
    return TimelineAggregator(records).aggregate(date_range, cumulative_scope)
