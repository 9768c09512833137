import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from config import RECAP_DEFAULT_YEAR
from routers.deps import load_dataset, repo_totals
from schemas import CommitOut, RecapRequest, RecapResponse, TopReposResponse
from services.analysis_client import AnalysisAPIClient, get_analysis_client
from services.datasets import DatasetStore, get_dataset_store
from services.metrics import MetricsCalculator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])

HISTOGRAM_POINTS = 12


def default_year() -> int:
    if RECAP_DEFAULT_YEAR:
        return int(RECAP_DEFAULT_YEAR)
    return datetime.now(timezone.utc).year


def _commit_out(commit) -> CommitOut:
    return CommitOut(
        hash=commit.hash,
        author=commit.author,
        timestamp=commit.timestamp,
        lines_added=commit.lines_added,
        lines_removed=commit.lines_removed,
        net_lines=commit.net_lines,
        message=commit.message,
        files_touched=commit.files_touched,
    )


@router.post("/recap", response_model=RecapResponse)
async def recap_repo(
    body: RecapRequest,
    client: AnalysisAPIClient = Depends(get_analysis_client),
    store: DatasetStore = Depends(get_dataset_store),
):
    """
    Year-in-review numbers for a repository.

    Everything except the pull requests and GitHub metadata is computed from
    the commits of `year` only.
    """
    dataset = await load_dataset(body.owner, body.repo, client, store, refresh=body.refresh)
    year = body.year or default_year()

    commits = MetricsCalculator.filter_year(dataset.analysis.commits, year)
    grid = MetricsCalculator.commit_grid(commits, year)

    logger.info(f"Recap {dataset.owner}/{dataset.repo} {year}: {len(commits)} commits")

    return RecapResponse(
        owner=dataset.owner,
        repo=dataset.repo,
        year=year,
        summary=MetricsCalculator.summarize(commits),
        top_contributors=MetricsCalculator.top_contributors(commits),
        biggest_commits=[_commit_out(c) for c in MetricsCalculator.biggest_commits(commits)],
        smallest_commits=[_commit_out(c) for c in MetricsCalculator.smallest_commits(commits)],
        busiest_week=MetricsCalculator.busiest_week(commits),
        commit_grid=grid["days"],
        max_commits_in_a_day=grid["max_commits_in_a_day"],
        longest_streak=MetricsCalculator.longest_streak(grid["days"]),
        lines_histogram=MetricsCalculator.lines_histogram(commits, HISTOGRAM_POINTS),
        top_pull_requests=MetricsCalculator.top_pull_requests(dataset.analysis.pull_requests),
        repo_totals=repo_totals(dataset),
        github=dataset.analysis.github,
    )


@router.get("/top-repos", response_model=TopReposResponse)
async def top_repos(client: AnalysisAPIClient = Depends(get_analysis_client)):
    """Most viewed repositories, as reported by the analysis API."""
    return TopReposResponse(repos=await client.top_repos())
