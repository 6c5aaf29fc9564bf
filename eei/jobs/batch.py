"""
Batch Orchestrator.

Resumable, time-fenced executor for batch jobs. Each advance() call:

1. Takes the job lease (one invocation per job at a time).
2. Audits URLs from `cursor` onwards, one at a time with a cooldown between
   them, each inside a per-entity timeout.
3. Stops when the URL list, the chunk size or the time budget runs out.
4. Persists the job (always) and records a drift snapshot in the
   background when the job just completed.

Per-URL failures become entries in `job.errors`; they never abort the chunk.
Hitting the time budget is normal flow control, not an error.
"""

import asyncio
import time
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import structlog

from eei.core.config import Settings
from eei.core.exceptions import EEIError, InputError, classify_error
from eei.core.models import (
    AuditOutcome,
    BatchAggregates,
    BatchProgress,
    BatchStatus,
    Job,
    JobError,
    JobStatus,
    Pipeline,
)
from eei.db.drift import DriftRecorder, build_snapshot
from eei.db.jobs import JobStore
from eei.services.datasets import DatasetLoader

logger = structlog.get_logger()


class UrlAuditor(Protocol):
    async def audit(self, url: str, pipeline: Pipeline = Pipeline.FULL) -> AuditOutcome: ...


@dataclass
class AdvanceResult:
    job: Job
    processed: int
    incomplete: bool

    def progress(self) -> BatchProgress:
        return BatchProgress(
            job_id=self.job.id,
            status=self.job.status,
            processed=self.job.cursor,
            total=self.job.total,
        )


def aggregate_results(job: Job) -> BatchAggregates:
    scored = [r.entity_score for r in job.results if r.success and r.entity_score is not None]
    bands = Counter(r.band for r in job.results if r.success and r.band)
    return BatchAggregates(
        audited=len(job.results),
        failed=len(job.errors),
        scored=len(scored),
        avg_entity_score=round(sum(scored) / len(scored), 2) if scored else None,
        bands=dict(bands),
    )


class BatchOrchestrator:
    """Starts, advances and reports on batch jobs."""

    def __init__(
        self,
        job_store: JobStore,
        auditor: UrlAuditor,
        drift: DriftRecorder,
        settings: Settings,
        datasets: DatasetLoader | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            job_store: persistence for jobs
            auditor: single-URL audit pipeline
            drift: background drift recorder
            settings: budgets, timeouts, cooldown, chunk size
            datasets: loader used by start_batch()
            clock: monotonic clock in seconds
            sleep: cooldown sleeper
        """
        self.job_store = job_store
        self.auditor = auditor
        self.drift = drift
        self.settings = settings
        self.datasets = datasets
        self.clock = clock
        self.sleep = sleep
        self.log = logger.bind(component="BatchOrchestrator")

    # -------------------------------------------------------------------------
    # Start
    # -------------------------------------------------------------------------

    async def start_batch(
        self,
        dataset_key: str,
        pipeline: Pipeline = Pipeline.FULL,
        chunk_size: int | None = None,
    ) -> Job:
        """
        Create a queued job for a dataset.

        Raises:
            InputError: unknown or empty dataset
        """
        if self.datasets is None:
            raise InputError("No dataset loader configured")

        dataset = self.datasets.load(dataset_key)
        job = Job(
            id=uuid.uuid4().hex,
            dataset=dataset.key,
            vertical=dataset.vertical,
            urls=list(dataset.urls),
            chunk_size=chunk_size or self.settings.chunk_size,
            pipeline=pipeline,
        )
        return await self.job_store.create(job)

    # -------------------------------------------------------------------------
    # Advance
    # -------------------------------------------------------------------------

    async def advance(self, job_id: str, time_budget: float | None = None) -> AdvanceResult:
        """
        Advance a job by one chunk.

        A completed job is returned unchanged.

        Raises:
            JobNotFoundError: unknown or expired job
            JobConflictError: another invocation is advancing the job
        """
        budget = self.settings.time_budget_seconds if time_budget is None else time_budget

        with structlog.contextvars.bound_contextvars(job_id=job_id):
            # Completed jobs are a no-op even while another invocation holds the lease.
            current = await self.job_store.require(job_id)
            if current.status == JobStatus.COMPLETED:
                self.log.debug("Job already completed")
                return AdvanceResult(job=current, processed=0, incomplete=False)

            async with self.job_store.lease(job_id):
                job = await self.job_store.require(job_id)

                if job.status == JobStatus.COMPLETED:
                    self.log.debug("Job already completed")
                    return AdvanceResult(job=job, processed=0, incomplete=False)

                processed = await self._run_chunk(job, budget)

                job.status = JobStatus.COMPLETED if job.is_complete else JobStatus.RUNNING
                saved = await self.job_store.save(job)

            self.log.info(
                "Chunk finished",
                processed=processed,
                cursor=saved.cursor,
                total=saved.total,
                status=saved.status.value,
            )

            if saved.status == JobStatus.COMPLETED:
                self.drift.record(saved.dataset, build_snapshot(saved))

        return AdvanceResult(job=saved, processed=processed, incomplete=not saved.is_complete)

    async def _run_chunk(self, job: Job, budget: float) -> int:
        started = self.clock()
        processed = 0

        while not job.is_complete and processed < job.chunk_size:
            if self.clock() - started >= budget:
                self.log.info("Time budget reached", cursor=job.cursor, budget=budget)
                break

            url = job.urls[job.cursor]
            await self._audit_into(job, url)
            job.cursor += 1
            processed += 1

            more = not job.is_complete and processed < job.chunk_size
            if more and self.settings.cooldown_seconds > 0:
                await self.sleep(self.settings.cooldown_seconds)

        return processed

    async def _audit_into(self, job: Job, url: str) -> None:
        """Audit one URL and append the outcome to results or errors."""
        timeout = self.settings.entity_timeout_seconds
        try:
            outcome = await asyncio.wait_for(
                self.auditor.audit(url, job.pipeline), timeout=timeout
            )
        except TimeoutError:
            self.log.warning("Entity timed out", url=url[:80], timeout=timeout)
            job.errors.append(
                JobError(url=url, error=f"Entity timed out after {timeout:g}s", kind="timeout")
            )
            return
        except InputError as e:
            self.log.warning("Invalid URL in job", url=url[:80], error=e.message)
            job.errors.append(JobError(url=url, error=e.message, kind="input"))
            return
        except EEIError as e:
            kind = classify_error(e)
            self.log.warning("Entity audit failed", url=url[:80], kind=kind, error=e.message)
            job.errors.append(JobError(url=url, error=e.message, kind=kind))
            return
        except Exception as e:
            self.log.exception("Unexpected error auditing entity", url=url[:80])
            job.errors.append(
                JobError(url=url, error=str(e) or type(e).__name__, kind="internal")
            )
            return

        if outcome.success:
            job.results.append(outcome.thin())
        else:
            job.errors.append(
                JobError(
                    url=url,
                    error=outcome.error or "Audit failed",
                    kind=outcome.error_kind or "unknown",
                )
            )

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    async def get_status(self, job_id: str) -> BatchStatus:
        """
        Raises:
            JobNotFoundError: unknown or expired job
        """
        job = await self.job_store.require(job_id)
        return BatchStatus(
            job_id=job.id,
            status=job.status,
            processed=job.cursor,
            total=job.total,
            dataset=job.dataset,
            vertical=job.vertical,
            pipeline=job.pipeline,
            aggregates=aggregate_results(job),
            results=job.results,
            errors=job.errors,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
