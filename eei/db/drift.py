"""
Drift Recorder.

Appends a DriftSnapshot to a vertical's history as a detached background
task. The caller never waits on it and never sees its failures; they are
logged only. drain() lets shutdown hooks and tests wait for pending writes.
"""

import asyncio
from collections import Counter

import structlog

from eei.core.models import DriftSnapshot, Job
from eei.db.jobs import JobStore

logger = structlog.get_logger()


def build_snapshot(job: Job) -> DriftSnapshot:
    """Batch-level aggregate of a finished job with thin per-URL scores."""
    scored = [r for r in job.results if r.success and r.entity_score is not None]
    average = round(sum(r.entity_score for r in scored) / len(scored), 2) if scored else None
    return DriftSnapshot(
        vertical=job.vertical,
        dataset=job.dataset,
        job_id=job.id,
        totals={
            "total": job.total,
            "audited": len(job.results),
            "failed": len(job.errors),
            "scored": len(scored),
            "average_score": average,
            "bands": dict(Counter(r.band for r in scored if r.band)),
        },
        scores=[
            {
                "url": r.url,
                "entity_name": r.entity_name,
                "entity_score": r.entity_score,
                "band": r.band,
            }
            for r in scored
        ],
    )


class DriftRecorder:
    """Best-effort, non-blocking drift history writer."""

    def __init__(self, job_store: JobStore, max_snapshots: int = 0):
        self.job_store = job_store
        self.max_snapshots = max_snapshots
        self._pending: set[asyncio.Task] = set()
        self.log = logger.bind(component="DriftRecorder")

    def record(self, vertical: str, snapshot: DriftSnapshot) -> asyncio.Task:
        """Schedule the write and return immediately."""
        task = asyncio.create_task(self._write(vertical, snapshot))
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return task

    async def _write(self, vertical: str, snapshot: DriftSnapshot) -> None:
        await self.job_store.append_snapshot(vertical, snapshot, max_items=self.max_snapshots)
        self.log.info("Drift snapshot recorded", vertical=vertical, job_id=snapshot.job_id)

    def _finished(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            self.log.warning("Drift snapshot cancelled")
            return
        exc = task.exception()
        if exc is not None:
            self.log.warning("Drift snapshot failed", error=str(exc), error_type=type(exc).__name__)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled write. Failures stay in the log."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def history(self, vertical: str, limit: int | None = None) -> list[dict]:
        return await self.job_store.list_snapshots(vertical, limit=limit)
