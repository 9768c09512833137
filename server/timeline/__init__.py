"""
Commit timeline: bucketing and range brushing.

Exports:
    - TimelineAggregator / aggregate: bucketed series over a date range
    - compute_granularity, bucket_key, period_start, next_period_start: bucket boundaries
    - BrushController / update_selection: interactive range selection
    - CommitRecord, DateRange, Bucket, Granularity, Edge, CumulativeScope
"""

from .aggregator import (
    TimelineAggregator,
    WindowTotals,
    aggregate,
    bucket_key,
    compute_granularity,
    next_period_start,
    period_start,
    window_totals,
)
from .brush import (
    BrushController,
    BrushState,
    SliderPosition,
    instant_at,
    slider_position,
    update_selection,
)
from .models import Bucket, CommitRecord, CumulativeScope, DateRange, Edge, Granularity

__all__ = [
    "TimelineAggregator",
    "WindowTotals",
    "aggregate",
    "bucket_key",
    "compute_granularity",
    "next_period_start",
    "period_start",
    "window_totals",
    "BrushController",
    "BrushState",
    "SliderPosition",
    "instant_at",
    "slider_position",
    "update_selection",
    "Bucket",
    "CommitRecord",
    "CumulativeScope",
    "DateRange",
    "Edge",
    "Granularity",
]
