from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import app
from services.analysis_client import AnalysisResult, RepositoryNotFoundError, get_analysis_client
from services.datasets import dataset_store, session_registry
from timeline import CommitRecord


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_commit(when, added=0, removed=0, author="alice", hash=None, message="", files=0) -> CommitRecord:
    return CommitRecord(
        hash=hash or f"c{int(when.timestamp()) if when else 0:x}",
        author=author,
        timestamp=when,
        lines_added=added,
        lines_removed=removed,
        message=message,
        files_touched=files,
    )


class FakeClock:
    """Settable `now()` for the in-memory stores' expiry checks."""

    def __init__(self, start=None):
        self.now = start or utc(2024, 6, 1)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class FakeAnalysisClient:
    """Stands in for the upstream API: serves canned AnalysisResults by owner/repo."""

    def __init__(self, repos=None, top=None):
        self.repos = repos or {}
        self.top = top or []
        self.calls = []

    async def analyze(self, owner, repo):
        self.calls.append((owner, repo))
        commits = self.repos.get(f"{owner}/{repo}")
        if commits is None:
            raise RepositoryNotFoundError(owner, repo)
        return AnalysisResult(
            owner=owner,
            repo=repo,
            commits=tuple(commits),
            total_added=sum(c.lines_added for c in commits),
            total_removed=sum(c.lines_removed for c in commits),
            total_contributors=len({c.author for c in commits}),
            total_commits=len(commits),
            pull_requests={
                "total_count": 1,
                "items": [{
                    "number": 42,
                    "title": "Speed up the parser",
                    "user": {"login": "bob"},
                    "created_at": "2024-03-01T10:00:00Z",
                    "state": "closed",
                    "html_url": f"https://github.com/{owner}/{repo}/pull/42",
                    "comments": 7,
                    "reactions": {"total_count": 12},
                    "pull_request": {"merged_at": "2024-03-02T09:00:00Z"},
                }],
            },
            github={"stargazers_count": 10, "language": "Python", "size": 120},
        )

    async def top_repos(self):
        return self.top


@pytest.fixture
def scenario_commits():
    return [
        make_commit(utc(2024, 1, 1), 10, 2, hash="a1", files=4),
        make_commit(utc(2024, 1, 1), 5, 1, author="bob", hash="a2"),
        make_commit(utc(2024, 2, 15), 3, 3, hash="a3"),
    ]


@pytest.fixture
def fake_client(scenario_commits):
    return FakeAnalysisClient(repos={"octo/demo": scenario_commits})


@pytest.fixture
def client(fake_client):
    dataset_store.clear()
    session_registry.clear()
    app.dependency_overrides[get_analysis_client] = lambda: fake_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        dataset_store.clear()
        session_registry.clear()
