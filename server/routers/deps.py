import re

from fastapi import HTTPException

from schemas import RepoTotalsOut
from services.analysis_client import AnalysisAPIClient
from services.datasets import DatasetStore, RepoDataset

REPO_PART_RE = re.compile(r"^[a-zA-Z0-9_.-]{1,100}$")


def validate_repo(owner: str, repo: str) -> tuple[str, str]:
    """Validate owner/repo names. Returns the stripped pair."""
    owner, repo = owner.strip(), repo.strip()
    if repo.endswith(".git"):
        repo = repo[:-4]

    if not REPO_PART_RE.match(owner) or not REPO_PART_RE.match(repo):
        raise HTTPException(
            status_code=400,
            detail="Invalid repository. Owner and name may only contain letters, digits, '-', '_' and '.'",
        )
    return owner, repo


async def load_dataset(
    owner: str,
    repo: str,
    client: AnalysisAPIClient,
    store: DatasetStore,
    refresh: bool = False,
) -> RepoDataset:
    owner, repo = validate_repo(owner, repo)
    return await store.load(owner, repo, client, refresh=refresh)


def repo_totals(dataset: RepoDataset) -> RepoTotalsOut:
    analysis = dataset.analysis
    return RepoTotalsOut(
        total_commits=analysis.total_commits,
        total_contributors=analysis.total_contributors,
        lines_added=analysis.total_added,
        lines_removed=analysis.total_removed,
    )
