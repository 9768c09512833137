import asyncio

import pytest

from conftest import FakeAnalysisClient, FakeClock, make_commit, utc
from services.datasets import BrushSessionRegistry, DatasetStore, SessionNotFoundError


def _load(store, client, owner="octo", repo="demo", refresh=False):
    return asyncio.run(store.load(owner, repo, client, refresh=refresh))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return FakeAnalysisClient(repos={"octo/demo": [make_commit(utc(2024, 1, 1), 5, hash="first")]})


# =============================================================================
# DATASET STORE
# =============================================================================

class TestDatasetStore:
    def test_cached_within_ttl(self, clock, upstream):
        store = DatasetStore(ttl=600, clock=clock)

        first = _load(store, upstream)
        clock.advance(599)
        assert _load(store, upstream) is first
        assert len(upstream.calls) == 1

    def test_stale_dataset_is_refetched(self, clock, upstream):
        store = DatasetStore(ttl=600, clock=clock)
        _load(store, upstream)

        upstream.repos["octo/demo"].append(make_commit(utc(2024, 1, 2), 3, hash="second"))
        clock.advance(600)
        dataset = _load(store, upstream)

        assert len(upstream.calls) == 2
        assert [r.hash for r in dataset.aggregator.records] == ["first", "second"]
        assert dataset.loaded_at == clock.now

    def test_refresh_bypasses_fresh_cache(self, clock, upstream):
        store = DatasetStore(ttl=600, clock=clock)
        first = _load(store, upstream)

        refreshed = _load(store, upstream, refresh=True)

        assert refreshed is not first
        assert len(upstream.calls) == 2
        assert _load(store, upstream) is refreshed

    def test_zero_ttl_keeps_dataset_until_evicted(self, clock, upstream):
        store = DatasetStore(ttl=0, clock=clock)
        first = _load(store, upstream)

        clock.advance(10 ** 7)
        assert _load(store, upstream) is first

    def test_least_recently_used_is_evicted(self, clock):
        upstream = FakeAnalysisClient(repos={f"octo/r{i}": [make_commit(utc(2024, 1, 1))] for i in range(3)})
        store = DatasetStore(max_size=2, clock=clock)

        _load(store, upstream, repo="r0")
        _load(store, upstream, repo="r1")
        _load(store, upstream, repo="r0")
        _load(store, upstream, repo="r2")

        assert len(store) == 2
        assert store.get("octo", "r1") is None
        assert store.get("OCTO", "R0") is not None


# =============================================================================
# BRUSH SESSIONS
# =============================================================================

class TestBrushSessionRegistry:
    @pytest.fixture
    def dataset(self, clock, upstream):
        return _load(DatasetStore(clock=clock), upstream)

    def test_opening_past_the_cap_closes_least_recently_used(self, clock, dataset):
        sessions = BrushSessionRegistry(max_sessions=3, ttl=0, clock=clock)

        a, b, c = (sessions.open(dataset) for _ in range(3))
        sessions.get(a.id)
        d = sessions.open(dataset)

        assert len(sessions) == 3
        with pytest.raises(SessionNotFoundError):
            sessions.get(b.id)
        for session in (a, c, d):
            assert sessions.get(session.id) is session

    def test_many_sessions_stay_bounded(self, clock):
        upstream = FakeAnalysisClient(repos={f"octo/r{i}": [make_commit(utc(2024, 1, 1))] for i in range(50)})
        store = DatasetStore(max_size=2, clock=clock)
        sessions = BrushSessionRegistry(max_sessions=5, clock=clock)

        opened = [sessions.open(_load(store, upstream, repo=f"r{i}")) for i in range(50)]

        assert len(store) == 2
        assert len(sessions) == 5
        assert {sessions.get(s.id).dataset.repo for s in opened[-5:]} == {f"r{i}" for i in range(45, 50)}
        with pytest.raises(SessionNotFoundError):
            sessions.get(opened[0].id)

    def test_idle_sessions_expire(self, clock, dataset):
        sessions = BrushSessionRegistry(ttl=60, clock=clock)
        session = sessions.open(dataset)

        clock.advance(45)
        assert sessions.get(session.id) is session
        # the lookup above counts as use
        clock.advance(45)
        assert sessions.get(session.id) is session

        clock.advance(60)
        with pytest.raises(SessionNotFoundError):
            sessions.get(session.id)
        assert len(sessions) == 0

    def test_expired_sessions_are_dropped_on_open(self, clock, dataset):
        sessions = BrushSessionRegistry(ttl=60, clock=clock)
        sessions.open(dataset)
        sessions.open(dataset)

        clock.advance(61)
        fresh = sessions.open(dataset)

        assert len(sessions) == 1
        assert sessions.get(fresh.id) is fresh

    def test_zero_ttl_never_expires(self, clock, dataset):
        sessions = BrushSessionRegistry(ttl=0, clock=clock)
        session = sessions.open(dataset)

        clock.advance(10 ** 7)
        assert sessions.get(session.id) is session

    def test_close(self, clock, dataset):
        sessions = BrushSessionRegistry(clock=clock)
        session = sessions.open(dataset)

        sessions.close(session.id)
        with pytest.raises(SessionNotFoundError):
            sessions.close(session.id)
