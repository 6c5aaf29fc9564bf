"""
Unit tests for the Batch Orchestrator.

The auditor is scripted per URL; time is driven by a fake clock so budget
checks are deterministic.
"""

import pytest

from eei.core.exceptions import (
    InputError,
    JobConflictError,
    JobNotFoundError,
    NetworkError,
)
from eei.core.models import AuditOutcome, Job, JobStatus, Pipeline
from eei.jobs import BatchOrchestrator
from eei.services.datasets import JsonDatasetLoader
from tests.factories import DATA_DIR, HANG, ScriptedAuditor, outcome

pytestmark = pytest.mark.asyncio

URLS = [f"https://site{i}.com" for i in range(6)]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


async def create_job(job_store, urls=None, chunk_size=10, job_id="job-1") -> Job:
    return await job_store.create(
        Job(id=job_id, dataset="core-web", vertical="Core Web", urls=urls or URLS, chunk_size=chunk_size)
    )


def orchestrator(job_store, drift, settings, auditor, **kwargs) -> BatchOrchestrator:
    return BatchOrchestrator(
        job_store,
        auditor,
        drift,
        settings,
        datasets=JsonDatasetLoader(DATA_DIR),
        **kwargs,
    )


class TestStartBatch:
    """Test job creation from datasets."""

    async def test_start_from_dataset(self, job_store, drift, settings):
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor())
        job = await orch.start_batch("core-web", Pipeline.PROMOTED, chunk_size=3)

        stored = await job_store.require(job.id)
        assert stored.status == JobStatus.QUEUED
        assert stored.cursor == 0
        assert stored.vertical == "Core Web"
        assert stored.pipeline == Pipeline.PROMOTED
        assert stored.chunk_size == 3
        assert stored.total == len(stored.urls) > 0

    async def test_default_chunk_size_from_settings(self, job_store, drift, settings):
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor())
        job = await orch.start_batch("core-web")
        assert job.chunk_size == settings.chunk_size

    async def test_unknown_dataset(self, job_store, drift, settings):
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor())
        with pytest.raises(InputError):
            await orch.start_batch("no-such-vertical")

    async def test_unique_ids(self, job_store, drift, settings):
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor())
        first = await orch.start_batch("core-web")
        second = await orch.start_batch("core-web")
        assert first.id != second.id


class TestAdvance:
    """Test chunked, time-fenced advancement."""

    async def test_per_url_failures_are_isolated(self, job_store, drift, settings):
        settings.entity_timeout_seconds = 0.05
        urls = ["https://a.com", "https://b.com", "https://c.com"]
        auditor = ScriptedAuditor(
            {
                "https://a.com": outcome("https://a.com", 75, "Gold"),
                "https://b.com": HANG,
                "https://c.com": NetworkError("connection refused"),
            }
        )
        await create_job(job_store, urls=urls)

        result = await orchestrator(job_store, drift, settings, auditor).advance("job-1")
        job = result.job

        assert job.status == JobStatus.COMPLETED
        assert job.cursor == 3
        assert result.incomplete is False
        assert [r.url for r in job.results] == ["https://a.com"]
        assert [(e.url, e.kind) for e in job.errors] == [
            ("https://b.com", "timeout"),
            ("https://c.com", "network"),
        ]
        assert job.results[0].breakdown is None

        await drift.drain()
        history = await drift.history("core-web")
        assert len(history) == 1
        assert history[0]["job_id"] == "job-1"
        assert history[0]["totals"]["scored"] == 1

    async def test_time_budget_and_resume(self, job_store, drift, settings):
        clock = FakeClock()

        def tick(url: str) -> None:
            clock.now += 30

        auditor = ScriptedAuditor(on_call=tick)
        await create_job(job_store)
        orch = orchestrator(job_store, drift, settings, auditor, clock=clock)

        first = await orch.advance("job-1", time_budget=50)
        assert first.job.cursor == 2
        assert first.job.status == JobStatus.RUNNING
        assert first.incomplete is True

        second = await orch.advance("job-1", time_budget=50)
        assert second.job.cursor == 4
        assert auditor.calls == URLS[0:4]

    async def test_chunk_size_bounds_work(self, job_store, drift, settings):
        auditor = ScriptedAuditor()
        await create_job(job_store, chunk_size=4)

        result = await orchestrator(job_store, drift, settings, auditor).advance("job-1")
        assert result.processed == 4
        assert result.job.cursor == 4
        assert result.incomplete is True

    async def test_cooldown_only_between_urls(self, job_store, drift, settings):
        settings.cooldown_seconds = 0.5
        sleeps = []

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        await create_job(job_store, urls=URLS[:3])
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor(), sleep=fake_sleep)
        await orch.advance("job-1")

        assert sleeps == [0.5, 0.5]

    async def test_completed_job_is_unchanged(self, job_store, drift, settings):
        auditor = ScriptedAuditor()
        await create_job(job_store, urls=URLS[:2])
        orch = orchestrator(job_store, drift, settings, auditor)

        done = await orch.advance("job-1")
        again = await orch.advance("job-1")

        assert again.job.version == done.job.version
        assert again.processed == 0
        assert auditor.calls == URLS[:2]

        await drift.drain()
        assert len(await drift.history("core-web")) == 1

    async def test_completed_job_is_unchanged_while_leased(self, job_store, drift, settings):
        auditor = ScriptedAuditor()
        await create_job(job_store, urls=URLS[:2])
        orch = orchestrator(job_store, drift, settings, auditor)
        done = await orch.advance("job-1")

        async with job_store.lease("job-1"):
            again = await orch.advance("job-1")

        assert again.processed == 0
        assert again.incomplete is False
        assert again.job.version == done.job.version
        assert auditor.calls == URLS[:2]

    async def test_concurrent_advance_conflicts(self, job_store, drift, settings):
        await create_job(job_store)
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor())

        async with job_store.lease("job-1"):
            with pytest.raises(JobConflictError):
                await orch.advance("job-1")

    async def test_unknown_job(self, job_store, drift, settings):
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor())
        with pytest.raises(JobNotFoundError):
            await orch.advance("missing")

    async def test_every_url_accounted_for(self, job_store, drift, settings):
        auditor = ScriptedAuditor(
            {
                URLS[1]: RuntimeError("unexpected"),
                URLS[3]: AuditOutcome(success=False, url=URLS[3], error="HTTP 500", error_kind="unknown"),
                URLS[4]: InputError("Invalid URL format"),
            }
        )
        await create_job(job_store, chunk_size=2)
        orch = orchestrator(job_store, drift, settings, auditor)

        result = None
        for _ in range(3):
            result = await orch.advance("job-1")
            job = result.job
            assert len(job.results) + len(job.errors) == job.cursor

        assert result.job.status == JobStatus.COMPLETED
        kinds = {e.url: e.kind for e in result.job.errors}
        assert kinds == {URLS[1]: "internal", URLS[3]: "unknown", URLS[4]: "input"}


class TestStatus:
    """Test status reporting."""

    async def test_status_aggregates(self, job_store, drift, settings):
        auditor = ScriptedAuditor(
            {
                URLS[0]: outcome(URLS[0], 90, "Sovereign"),
                URLS[1]: outcome(URLS[1], 60, "Gold"),
                URLS[2]: NetworkError("dns failure"),
            }
        )
        await create_job(job_store, urls=URLS[:3])
        orch = orchestrator(job_store, drift, settings, auditor)
        await orch.advance("job-1")

        status = await orch.get_status("job-1")
        assert status.status == JobStatus.COMPLETED
        assert status.processed == 3
        assert status.total == 3
        assert status.aggregates.audited == 2
        assert status.aggregates.failed == 1
        assert status.aggregates.avg_entity_score == 75
        assert status.aggregates.bands == {"Sovereign": 1, "Gold": 1}

    async def test_status_of_missing_job(self, job_store, drift, settings):
        orch = orchestrator(job_store, drift, settings, ScriptedAuditor())
        with pytest.raises(JobNotFoundError):
            await orch.get_status("missing")
