"""
GitBack API Schema Definitions

Pydantic models defining the request/response contract of the timeline service.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from timeline import BrushState, CumulativeScope, Edge, Granularity


# =============================================================================
# REQUEST MODELS
# =============================================================================

class RepoRequest(BaseModel):
    """Identifies a GitHub repository"""
    owner: str = Field(..., description="Repository owner or organization (e.g., 'facebook')")
    repo: str = Field(..., description="Repository name (e.g., 'react')")
    refresh: bool = Field(False, description="Fetch the repository again even if a fresh copy is cached")


class TimelineRequest(RepoRequest):
    """Request body for POST /api/timeline"""
    start: datetime | None = Field(None, description="Start of the selected range (defaults to the first commit)")
    end: datetime | None = Field(None, description="End of the selected range (defaults to the last commit)")
    cumulative_scope: CumulativeScope | None = Field(
        None, description="'history' keeps cumulative lines over all commits, 'window' restarts them per view"
    )


class SessionRequest(RepoRequest):
    """Request body for POST /api/timeline/sessions"""
    start: datetime | None = Field(None, description="Initial start of the selection")
    end: datetime | None = Field(None, description="Initial end of the selection")


class PointerEvent(BaseModel):
    """
    One input event for a brush session.

    - down: capture a handle (`edge` required)
    - move: drag the captured handle to `instant`, or to `percent` of the absolute range
    - up / leave: release the handle
    - reset: select the whole dataset again
    """
    type: Literal["down", "move", "up", "leave", "reset"] = Field(..., description="Event type")
    edge: Edge | None = Field(None, description="Handle pressed, for 'down'")
    instant: datetime | None = Field(None, description="Pointer position as a date, for 'move'")
    percent: float | None = Field(
        None, allow_inf_nan=False, description="Pointer position in percent of the slider, for 'move'; clamped to 0-100"
    )


class RecapRequest(RepoRequest):
    """Request body for POST /api/recap"""
    year: int | None = Field(None, ge=1970, le=9999, description="Year to recap (defaults to the current year)")


# =============================================================================
# TIMELINE
# =============================================================================

class BucketOut(BaseModel):
    """One aggregated period of the timeline"""
    key: str = Field(..., description="'YYYY-MM-DD' (day/week/2weeks) or 'YYYY-MM' (month)")
    period_start: datetime = Field(..., description="Start of the period (UTC midnight)")
    commit_count: int = Field(..., ge=0)
    lines_added: int = Field(..., ge=0)
    lines_removed: int = Field(..., ge=0)
    cumulative_lines: int = Field(..., description="Running net lines through the last commit counted in this bucket")


class DateRangeOut(BaseModel):
    start: datetime
    end: datetime


class SliderOut(BaseModel):
    """Handle offsets for drawing the range slider"""
    start_percent: float = Field(..., description="Left handle offset from the left edge, in percent")
    end_percent: float = Field(..., description="Right handle offset from the right edge, in percent")


class RepoTotalsOut(BaseModel):
    """Whole-history totals as reported by the analysis API"""
    total_commits: int
    total_contributors: int
    lines_added: int
    lines_removed: int


class WindowTotalsOut(BaseModel):
    """Totals over the visible buckets"""
    commits: int
    lines_added: int
    lines_removed: int
    net_lines: int


class TimelineResponse(BaseModel):
    owner: str
    repo: str
    granularity: Granularity
    cumulative_scope: CumulativeScope
    buckets: list[BucketOut] = Field(default_factory=list)
    selected: DateRangeOut = Field(..., description="Range currently shown")
    absolute: DateRangeOut = Field(..., description="First to last commit of the dataset")
    slider: SliderOut
    totals: WindowTotalsOut
    skipped_commits: int = Field(0, ge=0, description="Commits left out for lack of a usable timestamp")
    repo_totals: RepoTotalsOut = Field(..., description="Totals over the whole repository, independent of the selection")


class SessionResponse(BaseModel):
    session_id: str
    state: BrushState
    timeline: TimelineResponse


# =============================================================================
# RECAP
# =============================================================================

class SummaryOut(BaseModel):
    total_commits: int
    total_contributors: int
    lines_added: int
    lines_removed: int
    net_lines: int


class ContributorOut(BaseModel):
    name: str
    commits: int
    added: int
    removed: int


class CommitOut(BaseModel):
    hash: str
    author: str
    timestamp: datetime | None
    lines_added: int
    lines_removed: int
    net_lines: int
    message: str
    files_touched: int = 0


class WeekdayCountOut(BaseModel):
    day: str = Field(..., description="Weekday name, e.g. 'Monday'")
    count: int


class BusiestWeekOut(BaseModel):
    week_start: date = Field(..., description="Monday the week starts on")
    total_commits: int
    days: list[WeekdayCountOut] = Field(..., description="All seven weekdays, busiest first")


class GridDayOut(BaseModel):
    day: date
    count: int


class PullRequestOut(BaseModel):
    number: int
    title: str
    author: str
    created_at: datetime | None
    state: str
    url: str
    comments: int
    reactions: int
    merged: bool


class RecapResponse(BaseModel):
    owner: str
    repo: str
    year: int
    summary: SummaryOut
    top_contributors: list[ContributorOut] = Field(default_factory=list)
    biggest_commits: list[CommitOut] = Field(default_factory=list)
    smallest_commits: list[CommitOut] = Field(default_factory=list)
    busiest_week: BusiestWeekOut | None = None
    commit_grid: list[GridDayOut] = Field(default_factory=list)
    max_commits_in_a_day: int = 0
    longest_streak: int = 0
    lines_histogram: list[int] = Field(default_factory=list)
    top_pull_requests: list[PullRequestOut] = Field(default_factory=list)
    repo_totals: RepoTotalsOut
    github: dict | None = Field(None, description="Upstream GitHub metadata (stars, language, size)")


class TopReposResponse(BaseModel):
    repos: list[dict] = Field(default_factory=list)
