"""
Core data types for commit timelines.

Everything here is immutable: commit records are shared between the
timeline, the recap metrics and every open brush session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class Granularity(str, Enum):
    """Width of one timeline bucket"""
    DAY = "day"
    WEEK = "week"
    TWO_WEEKS = "2weeks"
    MONTH = "month"


class Edge(str, Enum):
    """Handle of the two-handle range brush"""
    START = "start"
    END = "end"


class CumulativeScope(str, Enum):
    """Where the running cumulative-lines total starts counting"""
    HISTORY = "history"
    WINDOW = "window"


# =============================================================================
# HELPERS
# =============================================================================

def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _count(value: Any) -> int:
    """Coerce a line/file counter from the wire. Garbage and negatives become 0."""
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


def _epoch_seconds(value: Any) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class CommitRecord:
    """
    One commit as reported by the analysis API.

    `timestamp` is None when the upstream entry had no usable date; such
    records still count for contributor statistics but never land in a
    timeline bucket.
    """
    hash: str
    author: str
    timestamp: datetime | None
    lines_added: int = 0
    lines_removed: int = 0
    message: str = ""
    files_touched: int = 0

    def __post_init__(self):
        if self.timestamp is not None:
            object.__setattr__(self, "timestamp", to_utc(self.timestamp))

    @property
    def net_lines(self) -> int:
        return self.lines_added - self.lines_removed

    @classmethod
    def from_api(cls, entry: dict) -> "CommitRecord":
        """
        Decode the compact wire format used by the analysis API:

            {"h": hash, "a": author, "d": unix seconds,
             "+": added, "-": removed, "m": message, "f": files touched}

        Zero counters and empty messages are omitted upstream.
        """
        timestamp = _epoch_seconds(entry.get("d"))
        if timestamp is None:
            logger.warning(f"Commit {entry.get('h')} has no usable timestamp ({entry.get('d')!r}); excluded from timelines")

        return cls(
            hash=str(entry.get("h") or ""),
            author=str(entry.get("a") or ""),
            timestamp=timestamp,
            lines_added=_count(entry.get("+")),
            lines_removed=_count(entry.get("-")),
            message=str(entry.get("m") or ""),
            files_touched=_count(entry.get("f")),
        )


@dataclass(frozen=True)
class DateRange:
    """Closed interval [start, end] of UTC instants."""
    start: datetime
    end: datetime

    def __post_init__(self):
        start, end = to_utc(self.start), to_utc(self.end)
        if start > end:
            raise ValueError(f"DateRange start {start.isoformat()} is after end {end.isoformat()}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def point(cls, instant: datetime) -> "DateRange":
        return cls(instant, instant)

    @classmethod
    def now(cls) -> "DateRange":
        """Fallback range for a dataset with no dated commits."""
        return cls.point(datetime.now(timezone.utc))

    @property
    def days(self) -> int:
        """Whole days between start and end."""
        return (self.end - self.start).days

    def contains(self, instant: datetime) -> bool:
        return self.start <= to_utc(instant) <= self.end

    def clamp(self, instant: datetime) -> datetime:
        return min(max(to_utc(instant), self.start), self.end)


@dataclass(frozen=True)
class Bucket:
    """Commits of one period collapsed into summary counts."""
    key: str
    period_start: datetime
    commit_count: int
    lines_added: int
    lines_removed: int
    cumulative_lines: int

    @property
    def net_lines(self) -> int:
        return self.lines_added - self.lines_removed
