import asyncio
import logging
from dataclasses import dataclass

import httpx

from config import (
    ANALYSIS_API_RETRIES,
    ANALYSIS_API_RETRY_DELAY,
    ANALYSIS_API_TIMEOUT,
    ANALYSIS_API_URL,
)
from timeline.models import CommitRecord

logger = logging.getLogger(__name__)


class AnalysisAPIError(Exception):
    """The analysis API failed or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RepositoryNotFoundError(AnalysisAPIError):
    def __init__(self, owner: str, repo: str):
        super().__init__(f"Repository {owner}/{repo} not found", status_code=404)
        self.owner = owner
        self.repo = repo


@dataclass(frozen=True)
class AnalysisResult:
    """Decoded /api/analyze response."""
    owner: str
    repo: str
    commits: tuple[CommitRecord, ...]
    total_added: int = 0
    total_removed: int = 0
    total_contributors: int = 0
    total_commits: int = 0
    github: dict | None = None
    pull_requests: dict | None = None


def decode_commits(entries: list[dict] | None) -> list[CommitRecord]:
    """Decode compact commit entries; anything that is not an object is dropped."""
    commits = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            logger.warning(f"Skipping malformed commit entry: {entry!r}")
            continue
        commits.append(CommitRecord.from_api(entry))
    return commits


class AnalysisAPIClient:
    def __init__(
        self,
        base_url: str = ANALYSIS_API_URL,
        timeout: float = ANALYSIS_API_TIMEOUT,
        retries: int = ANALYSIS_API_RETRIES,
        retry_delay: float = ANALYSIS_API_RETRY_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.retries = max(retries, 1)
        self.retry_delay = retry_delay
        self.transport = transport
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, retrying transport errors and 5xx responses."""
        last_error = "no attempt made"

        for attempt in range(self.retries):
            if attempt:
                await asyncio.sleep(self.retry_delay)

            try:
                async with httpx.AsyncClient(
                    base_url=self.base_url,
                    headers=self.headers,
                    timeout=self.timeout,
                    transport=self.transport,
                ) as client:
                    response = await client.request(method, path, **kwargs)
            except httpx.TransportError as e:
                last_error = str(e) or type(e).__name__
                logger.warning(f"{method} {path} failed (attempt {attempt + 1}/{self.retries}): {last_error}")
                continue

            if response.status_code >= 500:
                last_error = f"status {response.status_code}"
                logger.warning(f"{method} {path} returned {response.status_code} (attempt {attempt + 1}/{self.retries})")
                continue

            return response

        raise AnalysisAPIError(f"{method} {path} failed after {self.retries} attempts: {last_error}")

    async def analyze(self, owner: str, repo: str) -> AnalysisResult:
        response = await self._request("POST", "/api/analyze", json={"username": owner, "repo": repo})

        if response.status_code == 404:
            raise RepositoryNotFoundError(owner, repo)
        if response.status_code != 200:
            raise AnalysisAPIError(
                f"Analysis of {owner}/{repo} returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AnalysisAPIError(f"Analysis of {owner}/{repo} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise AnalysisAPIError(f"Analysis of {owner}/{repo} returned an unexpected payload")

        commits = decode_commits(data.get("commits"))
        logger.info(f"Fetched {len(commits)} commits for {owner}/{repo}", extra={"owner": owner, "repo": repo})

        return AnalysisResult(
            owner=owner,
            repo=repo,
            commits=tuple(commits),
            # missing totals are derived from the commits
            total_added=data.get("totalAdded") or sum(c.lines_added for c in commits),
            total_removed=data.get("totalRemoved") or sum(c.lines_removed for c in commits),
            total_contributors=data.get("totalContributors") or len({c.author for c in commits}),
            total_commits=data.get("totalCommits") or len(commits),
            github=data.get("github"),
            pull_requests=data.get("pullRequests"),
        )

    async def top_repos(self) -> list[dict]:
        response = await self._request("GET", "/api/top-repos")
        if response.status_code != 200:
            raise AnalysisAPIError(
                f"Top repos returned status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise AnalysisAPIError("Top repos returned invalid JSON") from e
        # upstream sends null when its database is empty
        return (data or {}).get("repos") or []


analysis_client = AnalysisAPIClient()


def get_analysis_client() -> AnalysisAPIClient:
    return analysis_client
