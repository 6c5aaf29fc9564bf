"""
Unit tests for the key-value stores, Job Store and Drift Recorder.
"""

from types import SimpleNamespace

import pytest

from eei.core.exceptions import JobConflictError, JobNotFoundError
from eei.core.models import DriftSnapshot, Job, JobStatus
from eei.db import DriftRecorder, JobStore, MemoryStore, build_snapshot
from eei.db.store import _slice
from tests.factories import outcome

pytestmark = pytest.mark.asyncio


def make_job(job_id="job-1", urls=None) -> Job:
    return Job(
        id=job_id,
        dataset="core-web",
        vertical="Core Web",
        urls=urls or ["https://a.com", "https://b.com", "https://c.com"],
    )


class TestMemoryStore:
    """Test the in-memory backend."""

    async def test_set_if_absent(self, memory_store):
        assert await memory_store.set_if_absent("k", "1") is True
        assert await memory_store.set_if_absent("k", "2") is False
        assert await memory_store.get("k") == "1"

    async def test_ttl_expiry(self, memory_store, monkeypatch):
        clock = SimpleNamespace(now=1000.0)
        monkeypatch.setattr(
            "eei.db.store.time", SimpleNamespace(monotonic=lambda: clock.now)
        )

        await memory_store.set("k", "v", ttl=10)
        assert await memory_store.get("k") == "v"

        clock.now += 10
        assert await memory_store.get("k") is None
        assert await memory_store.set_if_absent("k", "again", ttl=10) is True

    async def test_list_operations(self, memory_store):
        for value in ("a", "b", "c", "d"):
            await memory_store.push_front("l", value)

        assert await memory_store.list_range("l") == ["d", "c", "b", "a"]
        assert await memory_store.list_range("l", 0, 1) == ["d", "c"]

        await memory_store.trim("l", 0, 2)
        assert await memory_store.list_range("l") == ["d", "c", "b"]

    async def test_slice_matches_redis_semantics(self):
        items = ["a", "b", "c"]
        assert _slice(items, 0, -1) == ["a", "b", "c"]
        assert _slice(items, -2, -1) == ["b", "c"]
        assert _slice(items, 1, 10) == ["b", "c"]
        assert _slice(items, 5, 10) == []
        assert _slice([], 0, -1) == []


class TestJobStore:
    """Test job persistence and version checks."""

    async def test_create_and_get(self, job_store):
        await job_store.create(make_job())
        job = await job_store.get("job-1")

        assert job is not None
        assert job.cursor == 0
        assert job.status == JobStatus.QUEUED
        assert job.total == 3

    async def test_duplicate_create_conflicts(self, job_store):
        await job_store.create(make_job())
        with pytest.raises(JobConflictError):
            await job_store.create(make_job())

    async def test_missing_job(self, job_store):
        assert await job_store.get("nope") is None
        with pytest.raises(JobNotFoundError):
            await job_store.require("nope")

    async def test_save_bumps_version(self, job_store):
        job = await job_store.create(make_job())
        job.cursor = 1
        saved = await job_store.save(job)

        assert saved.version == 1
        assert (await job_store.require("job-1")).cursor == 1

    async def test_stale_version_conflicts(self, job_store):
        job = await job_store.create(make_job())
        first = job.model_copy(deep=True)
        second = job.model_copy(deep=True)

        first.cursor = 1
        await job_store.save(first)

        second.cursor = 2
        with pytest.raises(JobConflictError):
            await job_store.save(second)

    async def test_urls_are_immutable(self, job_store):
        job = await job_store.create(make_job())
        job.urls = ["https://a.com", "https://z.com", "https://c.com"]
        with pytest.raises(JobConflictError):
            await job_store.save(job)

    async def test_cursor_cannot_move_backwards(self, job_store):
        job = await job_store.create(make_job())
        job.cursor = 2
        saved = await job_store.save(job)

        saved.cursor = 1
        with pytest.raises(JobConflictError):
            await job_store.save(saved)

    async def test_update_with_mutator(self, job_store):
        await job_store.create(make_job())

        def advance(job: Job) -> None:
            job.cursor += 1
            job.results.append(outcome(job.urls[0]).thin())

        updated = await job_store.update("job-1", advance)
        assert updated.cursor == 1
        assert len(updated.results) == 1
        assert updated.results[0].breakdown is None

    async def test_expired_job_is_gone(self, memory_store, monkeypatch):
        clock = SimpleNamespace(now=0.0)
        monkeypatch.setattr(
            "eei.db.store.time", SimpleNamespace(monotonic=lambda: clock.now)
        )
        store = JobStore(memory_store, ttl=60)
        await store.create(make_job())

        clock.now = 61
        with pytest.raises(JobNotFoundError):
            await store.require("job-1")


class TestLease:
    """Test exclusive job leases."""

    async def test_lease_is_exclusive(self, job_store):
        async with job_store.lease("job-1"):
            with pytest.raises(JobConflictError):
                async with job_store.lease("job-1"):
                    pass

    async def test_lease_released_after_use(self, job_store):
        async with job_store.lease("job-1"):
            pass
        async with job_store.lease("job-1"):
            pass

    async def test_lease_released_on_error(self, job_store):
        with pytest.raises(RuntimeError):
            async with job_store.lease("job-1"):
                raise RuntimeError("boom")

        async with job_store.lease("job-1"):
            pass

    async def test_foreign_lease_is_not_released(self, job_store, memory_store):
        async with job_store.lease("job-1"):
            # Lease expired and another holder took it.
            await memory_store.set("job-lease:job-1", "someone-else", ttl=60)

        assert await memory_store.get("job-lease:job-1") == "someone-else"


class TestSnapshots:
    """Test append-only snapshot history."""

    async def test_newest_first(self, job_store):
        for i in range(3):
            await job_store.append_snapshot("core-web", {"n": i})

        snapshots = await job_store.list_snapshots("core-web")
        assert [s["n"] for s in snapshots] == [2, 1, 0]

    async def test_limit_and_trim(self, job_store):
        for i in range(5):
            await job_store.append_snapshot("core-web", {"n": i}, max_items=3)

        assert [s["n"] for s in await job_store.list_snapshots("core-web")] == [4, 3, 2]
        assert [s["n"] for s in await job_store.list_snapshots("core-web", limit=1)] == [4]

    async def test_unknown_vertical_is_empty(self, job_store):
        assert await job_store.list_snapshots("nothing-here") == []


class TestDriftRecorder:
    """Test background drift writes."""

    async def test_record_and_drain(self, drift):
        job = make_job()
        job.cursor = 3
        job.results = [outcome("https://a.com", 80, "Platinum"), outcome("https://b.com", 60, "Gold")]

        drift.record("core-web", build_snapshot(job))
        await drift.drain()

        history = await drift.history("core-web")
        assert len(history) == 1
        assert history[0]["totals"]["scored"] == 2
        assert history[0]["totals"]["average_score"] == 70
        assert history[0]["totals"]["bands"] == {"Platinum": 1, "Gold": 1}
        assert drift.pending == 0

    async def test_write_failure_is_not_raised(self, job_store):
        class BrokenStore(JobStore):
            async def append_snapshot(self, *args, **kwargs):
                raise RuntimeError("store down")

        recorder = DriftRecorder(BrokenStore(MemoryStore()))
        recorder.record("core-web", DriftSnapshot(vertical="Core Web", dataset="core-web"))

        await recorder.drain()
        assert recorder.pending == 0

    async def test_snapshot_of_empty_job(self):
        snapshot = build_snapshot(make_job())
        assert snapshot.totals["scored"] == 0
        assert snapshot.totals["average_score"] is None
        assert snapshot.scores == []
