"""
In-process registry of loaded commit datasets and open brush sessions.

A dataset is fetched from the analysis API once and grouped once per
granularity; every later timeline request or brush move for the same
repository reuses it until it goes stale (DATASET_CACHE_TTL) or the client
asks for a refresh. Brush sessions expire after BRUSH_SESSION_TTL idle
seconds and at most BRUSH_SESSION_MAX are kept. Nothing here survives a
restart.
"""

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from config import BRUSH_SESSION_MAX, BRUSH_SESSION_TTL, DATASET_CACHE_SIZE, DATASET_CACHE_TTL
from services.analysis_client import AnalysisAPIClient, AnalysisResult
from timeline import BrushController, DateRange, TimelineAggregator

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _expired(stamp: datetime, now: datetime, ttl: float) -> bool:
    return ttl > 0 and (now - stamp).total_seconds() >= ttl


class SessionNotFoundError(KeyError):
    """No open brush session with that id."""


@dataclass
class RepoDataset:
    analysis: AnalysisResult
    aggregator: TimelineAggregator
    loaded_at: datetime = field(default_factory=utc_now)

    @property
    def owner(self) -> str:
        return self.analysis.owner

    @property
    def repo(self) -> str:
        return self.analysis.repo

    @classmethod
    def from_analysis(cls, analysis: AnalysisResult, loaded_at: datetime | None = None) -> "RepoDataset":
        return cls(
            analysis=analysis,
            aggregator=TimelineAggregator(analysis.commits),
            loaded_at=loaded_at or utc_now(),
        )


def _dataset_key(owner: str, repo: str) -> tuple[str, str]:
    # GitHub names are case-insensitive
    return owner.lower(), repo.lower()


class DatasetStore:
    """Least-recently-used cache of RepoDatasets keyed by owner/repo, with a freshness limit."""

    def __init__(
        self,
        max_size: int = DATASET_CACHE_SIZE,
        ttl: float = DATASET_CACHE_TTL,
        clock: Clock = utc_now,
    ):
        self.max_size = max(max_size, 1)
        self.ttl = ttl
        self._clock = clock
        self._datasets: OrderedDict[tuple[str, str], RepoDataset] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._datasets)

    def get(self, owner: str, repo: str) -> RepoDataset | None:
        """Cached dataset, or None when missing or stale."""
        key = _dataset_key(owner, repo)
        with self._lock:
            dataset = self._datasets.get(key)
            if dataset is None:
                return None
            if _expired(dataset.loaded_at, self._clock(), self.ttl):
                del self._datasets[key]
                logger.debug(f"Dataset {owner}/{repo} is stale, refetching")
                return None
            self._datasets.move_to_end(key)
            return dataset

    def put(self, dataset: RepoDataset) -> RepoDataset:
        key = _dataset_key(dataset.owner, dataset.repo)
        with self._lock:
            self._datasets[key] = dataset
            self._datasets.move_to_end(key)
            while len(self._datasets) > self.max_size:
                evicted, _ = self._datasets.popitem(last=False)
                logger.debug(f"Evicted dataset {evicted[0]}/{evicted[1]}")
        return dataset

    async def load(self, owner: str, repo: str, client: AnalysisAPIClient, refresh: bool = False) -> RepoDataset:
        """Return the cached dataset, or fetch and group a new one when missing, stale or `refresh` is set."""
        if not refresh:
            dataset = self.get(owner, repo)
            if dataset is not None:
                return dataset

        analysis = await client.analyze(owner, repo)
        dataset = RepoDataset.from_analysis(analysis, loaded_at=self._clock())
        logger.info(
            f"Loaded {owner}/{repo}: {len(dataset.aggregator.records)} dated commits "
            f"from {dataset.aggregator.absolute_range.start.date()} to {dataset.aggregator.absolute_range.end.date()}",
            extra={"owner": owner, "repo": repo},
        )
        return self.put(dataset)

    def clear(self) -> None:
        with self._lock:
            self._datasets.clear()


@dataclass
class BrushSession:
    id: str
    dataset: RepoDataset
    brush: BrushController
    created_at: datetime = field(default_factory=utc_now)
    last_used: datetime = field(default_factory=utc_now)


class BrushSessionRegistry:
    """
    Open brush sessions. Each session has a single writer: the client that opened it.

    Sessions idle for `ttl` seconds are dropped, and opening one past
    `max_sessions` closes the least recently used. A session pins its
    dataset, so both limits also bound the datasets kept alive.
    """

    def __init__(
        self,
        max_sessions: int = BRUSH_SESSION_MAX,
        ttl: float = BRUSH_SESSION_TTL,
        clock: Clock = utc_now,
    ):
        self.max_sessions = max(max_sessions, 1)
        self.ttl = ttl
        self._clock = clock
        self._sessions: OrderedDict[str, BrushSession] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def _purge_expired(self, now: datetime) -> None:
        # sessions are ordered by last use, so stop at the first live one
        while self._sessions:
            oldest = next(iter(self._sessions.values()))
            if not _expired(oldest.last_used, now, self.ttl):
                break
            self._sessions.popitem(last=False)
            logger.debug(f"Expired brush session {oldest.id}")

    def open(self, dataset: RepoDataset, selection: DateRange | None = None) -> BrushSession:
        now = self._clock()
        session = BrushSession(
            id=uuid.uuid4().hex,
            dataset=dataset,
            brush=BrushController(dataset.aggregator.absolute_range, selection),
            created_at=now,
            last_used=now,
        )
        with self._lock:
            self._purge_expired(now)
            while len(self._sessions) >= self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info(f"Brush session limit reached, closed {evicted}")
            self._sessions[session.id] = session
        logger.debug(f"Opened brush session {session.id} on {dataset.owner}/{dataset.repo}")
        return session

    def get(self, session_id: str) -> BrushSession:
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            session = self._sessions.get(session_id)
            if session is not None:
                session.last_used = now
                self._sessions.move_to_end(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def close(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


dataset_store = DatasetStore()
session_registry = BrushSessionRegistry()


def get_dataset_store() -> DatasetStore:
    return dataset_store


def get_session_registry() -> BrushSessionRegistry:
    return session_registry
