import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from config import TIMELINE_CUMULATIVE_SCOPE
from routers.deps import load_dataset, repo_totals
from schemas import (
    BucketOut,
    DateRangeOut,
    PointerEvent,
    SessionRequest,
    SessionResponse,
    SliderOut,
    TimelineRequest,
    TimelineResponse,
    WindowTotalsOut,
)
from services.analysis_client import AnalysisAPIClient, get_analysis_client
from services.datasets import (
    BrushSession,
    BrushSessionRegistry,
    DatasetStore,
    RepoDataset,
    get_dataset_store,
    get_session_registry,
)
from timeline import BrushController, CumulativeScope, DateRange, compute_granularity, slider_position, window_totals

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/timeline", tags=["timeline"])

DEFAULT_SCOPE = CumulativeScope(TIMELINE_CUMULATIVE_SCOPE)


def requested_range(dataset: RepoDataset, start: datetime | None, end: datetime | None) -> DateRange | None:
    """Range asked for by the client, or None for the whole dataset."""
    if start is None and end is None:
        return None

    bounds = dataset.aggregator.absolute_range
    try:
        return DateRange(start or bounds.start, end or bounds.end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def build_timeline_response(
    dataset: RepoDataset,
    selection: DateRange,
    scope: CumulativeScope = DEFAULT_SCOPE,
) -> TimelineResponse:
    aggregator = dataset.aggregator
    bounds = aggregator.absolute_range
    buckets = aggregator.aggregate(selection, scope)
    totals = window_totals(buckets)
    position = slider_position(selection, bounds)

    return TimelineResponse(
        owner=dataset.owner,
        repo=dataset.repo,
        granularity=compute_granularity(selection),
        cumulative_scope=scope,
        buckets=[
            BucketOut(
                key=b.key,
                period_start=b.period_start,
                commit_count=b.commit_count,
                lines_added=b.lines_added,
                lines_removed=b.lines_removed,
                cumulative_lines=b.cumulative_lines,
            )
            for b in buckets
        ],
        selected=DateRangeOut(start=selection.start, end=selection.end),
        absolute=DateRangeOut(start=bounds.start, end=bounds.end),
        slider=SliderOut(start_percent=position.start_percent, end_percent=position.end_percent),
        totals=WindowTotalsOut(
            commits=totals.commits,
            lines_added=totals.lines_added,
            lines_removed=totals.lines_removed,
            net_lines=totals.net_lines,
        ),
        skipped_commits=aggregator.skipped,
        repo_totals=repo_totals(dataset),
    )


def build_session_response(session: BrushSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.id,
        state=session.brush.state,
        timeline=build_timeline_response(session.dataset, session.brush.selection),
    )


@router.post("", response_model=TimelineResponse)
async def get_timeline(
    body: TimelineRequest,
    client: AnalysisAPIClient = Depends(get_analysis_client),
    store: DatasetStore = Depends(get_dataset_store),
):
    """
    Bucketed commit timeline for a repository.

    Without start/end the whole history is shown. A given range is clamped
    to the first/last commit; bucket width follows the span of the range.
    """
    dataset = await load_dataset(body.owner, body.repo, client, store, refresh=body.refresh)
    # the brush does the clamping to the dataset bounds
    brush = BrushController(dataset.aggregator.absolute_range, requested_range(dataset, body.start, body.end))
    return build_timeline_response(dataset, brush.selection, body.cumulative_scope or DEFAULT_SCOPE)


@router.post("/sessions", response_model=SessionResponse)
async def open_session(
    body: SessionRequest,
    client: AnalysisAPIClient = Depends(get_analysis_client),
    store: DatasetStore = Depends(get_dataset_store),
    sessions: BrushSessionRegistry = Depends(get_session_registry),
):
    """Open an interactive brush over a repository's timeline."""
    dataset = await load_dataset(body.owner, body.repo, client, store, refresh=body.refresh)
    session = sessions.open(dataset, requested_range(dataset, body.start, body.end))
    return build_session_response(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str, sessions: BrushSessionRegistry = Depends(get_session_registry)):
    return build_session_response(sessions.get(session_id))


@router.post("/sessions/{session_id}/events", response_model=SessionResponse)
def send_pointer_event(
    session_id: str,
    event: PointerEvent,
    sessions: BrushSessionRegistry = Depends(get_session_registry),
):
    """Feed one pointer event to a brush session and return the re-aggregated view."""
    session = sessions.get(session_id)
    brush = session.brush

    if event.type == "down":
        if event.edge is None:
            raise HTTPException(status_code=400, detail="'down' events need an edge")
        brush.pointer_down(event.edge)
    elif event.type == "move":
        if event.instant is None and event.percent is None:
            raise HTTPException(status_code=400, detail="'move' events need an instant or a percent")
        brush.pointer_move(instant=event.instant, percent=event.percent)
    elif event.type == "reset":
        brush.reset()
    else:
        brush.pointer_up()

    return build_session_response(session)


@router.delete("/sessions/{session_id}")
def close_session(session_id: str, sessions: BrushSessionRegistry = Depends(get_session_registry)):
    sessions.close(session_id)
    return {"status": "closed", "session_id": session_id}
